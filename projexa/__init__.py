"""
Projexa
Capstone project management for departments: admins, guides and students.

Architecture:
- PostgreSQL: Structured data (users, projects, phases, submissions)
- MongoDB: Check reports and the reference text cache
- Gemini (OpenAI-compatible API): similarity screening only
"""

__version__ = "1.0.0"
