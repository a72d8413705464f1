# scripts/setup/init_db.py
"""
Initialize database — enables PostGIS and creates missing tables.
Run once before the first scheduled run.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from unified_alerts.database import create_tables, engine
from unified_alerts.config import settings
from sqlalchemy import text
from sqlalchemy.engine import make_url


def main():
    print("🗄️  Unified Alerts DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {make_url(settings.database_url).render_as_string(hide_password=True)}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nCheck DATABASE_URL or DATABASE_HOST / DATABASE_PORT / DATABASE_NAME in .env")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ Tables ready (camera_captures, plus unified_incidents / traffic_cameras if missing)")

    with engine.connect() as conn:
        for table in ("unified_incidents", "traffic_cameras", "camera_captures"):
            count = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
            print(f"   ✓ {table}: {count} rows")

    print("\n🎉 Database ready! Schedule the job with:")
    print("   python -m unified_alerts.main")


if __name__ == "__main__":
    main()
