"""
Database initialization script
Run this to create tables and seed reference data
"""
import sys
from datetime import time
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from timekeeper.core.database import engine, Base, SessionLocal
from timekeeper.models.employee import Department
from timekeeper.models.schedule import ShiftType

DEPARTMENTS = ["Operations", "Warehouse", "Administration"]

SHIFT_TYPES = [
    ("Morning", time(6, 0), time(14, 0)),
    ("Day", time(8, 0), time(17, 0)),
    ("Evening", time(14, 0), time(22, 0)),
    ("Night", time(22, 0), time(6, 0)),
]


def init_db():
    """Initialize database with tables"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✓ Tables created successfully")


def seed_data():
    """Seed departments and shift types"""
    db = SessionLocal()

    try:
        print("\nSeeding initial data...")

        for name in DEPARTMENTS:
            if not db.query(Department).filter(Department.name == name).first():
                db.add(Department(name=name))
                print(f"✓ Department created: {name}")

        for name, start, end in SHIFT_TYPES:
            if not db.query(ShiftType).filter(ShiftType.name == name).first():
                db.add(ShiftType(name=name, default_start_time=start, default_end_time=end))
                print(f"✓ Shift type created: {name} ({start:%H:%M}-{end:%H:%M})")

        db.commit()
        print("\n✓ Database seeded successfully!")

    except Exception as e:
        print(f"\n✗ Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed_data()
