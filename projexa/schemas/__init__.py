"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in schemas.py:
    from projexa.schemas.schemas import LoginRequest, TokenResponse
"""
