#!/usr/bin/env python3
"""Initialize database with tables"""

import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from sqlalchemy import inspect
from app.db.session import engine
from app.db.base import Base
from app.core.config import get_settings
from app.models import *  # noqa - Import all models

settings = get_settings()


def create_tables():
    """Create all tables"""
    print("Creating database tables...")

    # Drop all tables if in dev mode (optional)
    if settings.ENVIRONMENT == "dev":
        print("Dropping existing tables (dev mode)...")
        Base.metadata.drop_all(bind=engine)

    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    print("Tables created successfully!")


def verify_tables():
    """Verify tables were created"""
    tables = inspect(engine).get_table_names()

    print("\nCreated tables:")
    for table in tables:
        print(f"  - {table}")

    if not tables:
        print("  No tables found!")

    return {"applications", "agency_applications"}.issubset(tables)


def main():
    """Main function"""
    try:
        create_tables()

        if verify_tables():
            print("\n✅ Database initialized successfully!")
        else:
            print("\n❌ Failed to create tables!")
            sys.exit(1)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
