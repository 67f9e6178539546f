"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 drivers imported from a pasted roster (cars and motorcycles)
  - a scheduled queue for tomorrow morning with 5 of them
  - 3 finished deliveries from earlier today so rankings are not empty
"""

import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from src.config import settings
from src.domain.enums import DispatchStatus, DriverStatus
from src.domain.ranking import local_date
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import DispatchRecordModel, DriverModel, utcnow
from src.services.drivers import import_drivers
from src.services.queue import schedule_roster

ROSTER = """\
Camila Rojas\tauto
Matías González\tmoto
Valentina Muñoz\tauto
Benjamín Soto\tmoto
Isidora Contreras\tauto
Joaquín Silva\tauto
Florencia Díaz\tmoto
Tomás Fuentes\tauto
"""

TOMORROW = [
    "Camila Rojas",
    "Matías González",
    "Valentina Muñoz",
    "Benjamín Soto",
    "Isidora Contreras",
]

# (driver name, bags taken, destination area)
FINISHED = [
    ("Joaquín Silva", 4, "Maipú Centro"),
    ("Joaquín Silva", 2, "Ciudad Satélite"),
    ("Tomás Fuentes", 3, "Villa Los Héroes"),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        count = await session.scalar(select(func.count()).select_from(DriverModel))
        if count:
            print("Database already seeded. Skipping.")
            return

        # ── Drivers ───────────────────────────────────────────────────
        lines = await import_drivers(session, ROSTER)
        print(f"  Imported {sum(1 for line in lines if line.action == 'created')} drivers")

        # ── Tomorrow's scheduled queue ────────────────────────────────
        today = local_date(utcnow(), settings.local_timezone)
        roster = await schedule_roster(session, TOMORROW, today + timedelta(days=1))
        print(f"  Scheduled {len(roster.scheduled)} entries for {roster.day}")

        # ── Finished deliveries ───────────────────────────────────────
        now = utcnow()
        for offset, (name, bags, area) in enumerate(FINISHED, start=1):
            driver = await session.scalar(
                select(DriverModel).where(DriverModel.name == name)
            )
            start = now - timedelta(hours=offset + 1)
            session.add(
                DispatchRecordModel(
                    driver_id=driver.id,
                    driver_name=driver.name,
                    start_time=start,
                    end_time=start + timedelta(minutes=40),
                    start_latitude=settings.site_latitude,
                    start_longitude=settings.site_longitude,
                    status=DispatchStatus.COMPLETED,
                    bags_taken=bags,
                    destination_area=area,
                    device_id=f"seed-{driver.id[:8]}",
                )
            )
            driver.status = DriverStatus.INACTIVE
        await session.flush()
        print(f"  Created {len(FINISHED)} completed deliveries")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
