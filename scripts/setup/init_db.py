# scripts/setup/init_db.py
"""
Initialize database: creates all tables and, if no lot exists yet, a default lot.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--lot-name "Main Lot"] [--address "..."]
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine, SessionLocal
from app.config import settings
from app.services import lot_service
from app.services.sql_gateway import SqlAlchemyGateway
from sqlalchemy import inspect, text


def seed_default_lot(name: str, address: str = None):
    db = SessionLocal()
    try:
        gateway = SqlAlchemyGateway(db)
        lots = gateway.list_lots()
        if lots:
            print(f"ℹ️  {len(lots)} lot(s) already present, skipping seed")
            return
        lot = lot_service.create_lot(gateway, name, address)
        print(f"✅ Created lot '{lot.name}' ({lot.id}) with "
              f"{settings.INITIAL_PARKING_SPACES_COUNT} spaces, "
              f"{settings.INITIAL_VIP_SPACES_COUNT} VIP")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed a default parking lot")
    parser.add_argument("--lot-name", default="Main Lot")
    parser.add_argument("--address", default=None)
    parser.add_argument("--no-seed", action="store_true", help="Only create tables")
    args = parser.parse_args()

    print("🗄️  Parking DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if not args.no_seed:
        print("\n🅿️  Seeding default lot...")
        seed_default_lot(args.lot_name, args.address)

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn app.main:app --host 0.0.0.0 --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
