"""
Database seeding script.

Creates one user per role plus a small demo fleet (vehicles and drivers).
Run this script after the database is set up but before first use:

    python -m fleetops.seed
"""

import asyncio
from datetime import date, timedelta

from sqlalchemy import select

from fleetops.app.core.security import get_password_hash
from fleetops.app.db.session import AsyncSessionLocal, Base, engine
from fleetops.app.domain.lifecycle.driver_service import DriverService
from fleetops.app.domain.lifecycle.vehicle_service import VehicleService
from fleetops.app.models.audit_log import AuditLog  # noqa: F401
from fleetops.app.models.enums import UserRole
from fleetops.app.models.fleet_enums import VehicleType
from fleetops.app.models.user import User
from fleetops.app.models.vehicle import Vehicle

SEED_USERS = [
    ("admin", "admin@fleetops.local", "admin12345", UserRole.ADMIN),
    ("manager", "manager@fleetops.local", "manager12345", UserRole.FLEET_MANAGER),
    ("dispatcher", "dispatcher@fleetops.local", "dispatcher12345", UserRole.DISPATCHER),
    ("safety", "safety@fleetops.local", "safety12345", UserRole.SAFETY_OFFICER),
    ("analyst", "analyst@fleetops.local", "analyst12345", UserRole.FINANCIAL_ANALYSTS),
]

SEED_VEHICLES = [
    ("VAN-05", "Ford Transit", VehicleType.VAN, 500.0, 42000.0),
    ("TRK-11", "Volvo FH16", VehicleType.TRUCK, 5000.0, 150000.0),
    ("BIK-02", "Honda CB500X", VehicleType.BIKE, 40.0, 7000.0),
]

SEED_DRIVERS = [
    ("Alex Morgan", 400),
    ("Sam Rivera", 20),  # inside the renewal window
]


async def seed_users(db) -> None:
    """Create one user per role, skipping names that already exist."""
    for user_name, email, password, role in SEED_USERS:
        existing = (await db.execute(select(User).where(User.user_name == user_name))).scalar_one_or_none()
        if existing:
            print(f"ℹ️  {user_name} already exists, skipping")
            continue
        db.add(User(
            email=email,
            user_name=user_name,
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        ))
        print(f"✅ Created {role.value} user ({user_name} / {password})")
    await db.commit()


async def seed_fleet(db) -> None:
    """Register demo vehicles and drivers when the fleet is empty."""
    if (await db.execute(select(Vehicle.id).limit(1))).first():
        print("ℹ️  Fleet already seeded, skipping")
        return

    for plate, model, vehicle_type, max_load, cost in SEED_VEHICLES:
        await VehicleService.create(
            db, license_plate=plate, model=model, type=vehicle_type,
            max_load=max_load, acquisition_cost=cost,
        )
        print(f"✅ Registered vehicle {plate} ({model}, {max_load} kg)")

    for name, days in SEED_DRIVERS:
        await DriverService.create(db, name=name, license_expiry=date.today() + timedelta(days=days))
        print(f"✅ Onboarded driver {name}")


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")
        await seed_users(db)
        await seed_fleet(db)
        print("🎉 Seeding completed")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
