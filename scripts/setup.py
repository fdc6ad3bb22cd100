#!/usr/bin/env python3
"""Setup script for the registrations service.

Runs the migrations, seeds a sample event with a dorm, rooms and a portal,
and can print a password hash for the OPERATOR_PASSWORD_HASH setting.
"""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from conexus.core.database import async_session_factory, close_db
from conexus.core.security import hash_password
from conexus.models import Event
from conexus.schemas.accommodation import CreatePlaceRequest, CreateRoomRequest, PlaceKind
from conexus.schemas.attendance import CreatePortalRequest
from conexus.schemas.event import CreateEventRequest
from conexus.services.accommodation_service import AccommodationService
from conexus.services.attendance_service import AttendanceService
from conexus.services.event_service import EventService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Bring the schema up to date."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create a sample event with accommodation and a scanning portal."""
    async with async_session_factory() as db:
        existing = await db.execute(select(func.count(Event.id)))
        if existing.scalar_one() > 0:
            logger.info("Sample data already exists, skipping...")
            return

        event = await EventService(db).create_event(
            CreateEventRequest(title="Annual Student Conference", location="Main Campus")
        )

        accommodation = AccommodationService(db)
        dorm = await accommodation.create_place(CreatePlaceRequest(name="North Dorm", kind=PlaceKind.DORM))
        for number, beds in (("101", 2), ("102", 2), ("103", 4)):
            await accommodation.create_room(CreateRoomRequest(place_id=dorm.id, name=number, beds=beds))

        await AttendanceService(db).create_portal(
            CreatePortalRequest(id="main-hall", event_id=event.id, name="Main Hall")
        )

        logger.info("Sample data created", extra={"event_id": str(event.id)})


async def main(seed: bool) -> None:
    """Main setup function."""
    await asyncio.to_thread(run_migrations)

    if seed:
        await create_sample_data()

    await close_db()
    logger.info("Setup completed. Start the API with: cd server && uvicorn conexus.main:app --reload")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-seed", action="store_true", help="Skip sample data")
    parser.add_argument(
        "--hash-password",
        action="store_true",
        help="Prompt for an operator password and print its hash"
    )
    args = parser.parse_args()

    if args.hash_password:
        print(hash_password(getpass.getpass("Operator password: ")))
    else:
        asyncio.run(main(seed=not args.no_seed))
