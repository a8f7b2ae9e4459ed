# scripts/setup/init_db.py
"""
Initialize database: creates all tables, optionally seeds a first division.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--division "Matriz"]
"""

import sys
import os
import argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from camfleet.database import create_tables, engine, SessionLocal
from camfleet.models import Division
from camfleet.config import settings
from sqlalchemy import inspect, text


def main():
    parser = argparse.ArgumentParser(description="Create the dashboard tables")
    parser.add_argument("--division", help="Name of a division to create if missing")
    args = parser.parse_args()

    print("🗄️  Camera Fleet DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nCheck DATABASE_URL in .env (defaults to a local SQLite file).")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.division:
        with SessionLocal() as db:
            if db.query(Division).filter(Division.name == args.division).first():
                print(f"\nℹ️  Division '{args.division}' already exists")
            else:
                db.add(Division(name=args.division))
                db.commit()
                print(f"\n🏢 Division '{args.division}' created")

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn camfleet.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
