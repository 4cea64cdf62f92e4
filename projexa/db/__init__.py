"""
Database module - relational (SQLAlchemy) and MongoDB connections.
"""
from projexa.db.postgres import get_db_session, execute_raw_sql, check_postgres_connection
from projexa.db.mongodb import get_mongo_db, check_mongo_connection

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "check_postgres_connection",
    "get_mongo_db",
    "check_mongo_connection"
]
