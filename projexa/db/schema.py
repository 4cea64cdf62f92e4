"""
Relational schema.

Tables are declared with SQLAlchemy Core so the same definition creates the
PostgreSQL schema in production and a SQLite schema for tests. All queries
against them are plain SQL through get_db_session() / execute_raw_sql().

Entity overview:
- users: admins, guides and students (one table, role column)
- admin_projects: department-wide project templates created by admins
- projects: one row per student per admin project (or self-registered)
- project_groups / group_members: group formation inside an admin project
- phases / rubrics: milestones with deadline, marks and required sections
- submissions: one PDF per student per phase, with check and review status
- notifications: in-app messages
- previous_topics: titles of earlier years, used to flag repeated topics
"""

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Text, Boolean, Float, DateTime,
    ForeignKey, UniqueConstraint, func
)

metadata = MetaData()


users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("name", String(120), nullable=False),
    Column("role", String(20), nullable=False),
    Column("department", String(120)),
    Column("specialization", String(120)),
    Column("year", Integer),
    Column("semester", Integer),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, server_default=func.now()),
)

admin_projects = Table(
    "admin_projects", metadata,
    Column("admin_project_id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("department", String(120), nullable=False),
    Column("year", Integer),
    Column("semester", Integer),
    Column("created_by", Integer, ForeignKey("users.user_id")),
    Column("max_students", Integer, nullable=False, server_default="1"),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("project_type", String(20), nullable=False, server_default="individual"),
    Column("allow_group_formation", Boolean, nullable=False, server_default="0"),
    Column("min_group_size", Integer, nullable=False, server_default="2"),
    Column("max_group_size", Integer, nullable=False, server_default="4"),
    Column("assigned_guide_id", Integer, ForeignKey("users.user_id")),
    Column("created_at", DateTime, server_default=func.now()),
)

project_groups = Table(
    "project_groups", metadata,
    Column("group_id", Integer, primary_key=True, autoincrement=True),
    Column("admin_project_id", Integer, ForeignKey("admin_projects.admin_project_id"), nullable=False),
    Column("name", String(120), nullable=False),
    Column("description", Text),
    Column("max_members", Integer, nullable=False, server_default="4"),
    Column("created_by", Integer, ForeignKey("users.user_id")),
    Column("created_at", DateTime, server_default=func.now()),
)

group_members = Table(
    "group_members", metadata,
    Column("member_id", Integer, primary_key=True, autoincrement=True),
    Column("group_id", Integer, ForeignKey("project_groups.group_id"), nullable=False),
    Column("student_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("role", String(20), nullable=False, server_default="member"),
    Column("joined_at", DateTime, server_default=func.now()),
    UniqueConstraint("group_id", "student_id", name="group_members_group_student_unique"),
)

projects = Table(
    "projects", metadata,
    Column("project_id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("project_name", String(200)),
    Column("student_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("guide_id", Integer, ForeignKey("users.user_id")),
    Column("department", String(120)),
    Column("admin_project_id", Integer, ForeignKey("admin_projects.admin_project_id")),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("is_group_project", Boolean, nullable=False, server_default="0"),
    Column("group_id", Integer, ForeignKey("project_groups.group_id")),
    Column("similarity_score", Integer),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("student_id", "admin_project_id", name="projects_student_admin_project_unique"),
)

phases = Table(
    "phases", metadata,
    Column("phase_id", Integer, primary_key=True, autoincrement=True),
    Column("project_id", Integer, ForeignKey("admin_projects.admin_project_id"), nullable=False),
    Column("name", String(120), nullable=False),
    Column("description", Text),
    Column("deadline", DateTime, nullable=False),
    Column("max_marks", Integer, nullable=False),
    Column("late_penalty_per_day", Float, nullable=False, server_default="0"),
    Column("department", String(120)),
    Column("is_active", Boolean, nullable=False, server_default="0"),
    Column("created_by", Integer, ForeignKey("users.user_id")),
    Column("created_at", DateTime, server_default=func.now()),
)

rubrics = Table(
    "rubrics", metadata,
    Column("rubric_id", Integer, primary_key=True, autoincrement=True),
    Column("phase_id", Integer, ForeignKey("phases.phase_id"), nullable=False),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("created_at", DateTime, server_default=func.now()),
)

submissions = Table(
    "submissions", metadata,
    Column("submission_id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("project_id", Integer, ForeignKey("projects.project_id"), nullable=False),
    Column("phase_id", Integer, ForeignKey("phases.phase_id"), nullable=False),
    Column("file_path", String(500), nullable=False),
    Column("submission_date", DateTime, nullable=False),
    Column("rubric_check_status", String(20), nullable=False, server_default="pending"),
    Column("guide_status", String(20), nullable=False, server_default="pending"),
    Column("marks_awarded", Float),
    Column("remarks", Text),
    Column("late_days", Integer, nullable=False, server_default="0"),
    Column("similarity_score", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.now()),
)

notifications = Table(
    "notifications", metadata,
    Column("notification_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("title", String(200), nullable=False),
    Column("message", Text, nullable=False),
    Column("is_read", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.now()),
)

previous_topics = Table(
    "previous_topics", metadata,
    Column("topic_id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(300), nullable=False),
    Column("description", Text),
    Column("year", Integer),
)
