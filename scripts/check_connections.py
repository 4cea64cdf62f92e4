#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the relational store, MongoDB and the similarity model
are reachable with the current settings.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from projexa.db.postgres import check_postgres_connection
from projexa.db.mongodb import check_mongo_connection
from projexa.services.ai_client import get_ai_client
from projexa.core.config import get_settings


def main() -> int:
    settings = get_settings()
    failures = 0
    print("=" * 50)
    print("PROJEXA - CONNECTION CHECK")
    print("=" * 50)

    # Relational store
    print("\n[1] Checking relational database...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if check_postgres_connection():
        print("    ✅ Database: CONNECTED")
    else:
        print("    ❌ Database: FAILED")
        failures += 1

    # MongoDB
    print("\n[2] Checking MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if check_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")
        failures += 1

    # Similarity model (only if API key is set)
    print("\n[3] Checking similarity model...")
    if settings.ai_api_key:
        print(f"    Base URL: {settings.ai_base_url}")
        print(f"    Model: {settings.ai_model}")
        if get_ai_client().ping():
            print("    ✅ AI model: CONNECTED")
        else:
            print("    ❌ AI model: FAILED")
            failures += 1
    else:
        print("    ⚠️  AI model: AI_API_KEY not configured (similarity checks will fail)")

    print("\n" + "=" * 50)
    print("Connection check complete!" if not failures else f"{failures} connection(s) failed")
    print("=" * 50)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
