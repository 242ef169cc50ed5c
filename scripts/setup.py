#!/usr/bin/env python3
"""Setup script for the CeylonBooking API: creates tables and seeds sample data."""

import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

import jwt
from sqlalchemy import func, select

from ceylonbooking.core.config import settings
from ceylonbooking.core.database import async_session_factory, close_db, init_db
from ceylonbooking.models import *  # Import all models to ensure they're registered
from ceylonbooking.models import InventoryType, User, UserType
from ceylonbooking.schemas.listing import CreateListingRequest
from ceylonbooking.services.listing_service import ListingService
from ceylonbooking.services.user_service import UserService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def setup_database():
    """Create the schema."""
    logger.info("Setting up database...")

    try:
        await init_db()
        logger.info("Database setup completed successfully!")
    except Exception as e:
        logger.error(f"Database setup failed: {e}")
        raise


def dev_token(user: User) -> str:
    """Bearer token for local testing, valid for one week."""
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "exp": datetime.now(timezone.utc) + timedelta(days=7),
    }
    return jwt.encode(payload, settings.bearer_token_secret, algorithm=settings.bearer_token_algorithm)


async def create_sample_data():
    """Seed a host, a local and a foreign traveler, and one listing of each inventory type."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing_users = await db.execute(select(func.count()).select_from(User))
        if existing_users.scalar() > 0:
            logger.info("Sample data already exists, skipping...")
            return

        users = UserService(db)
        host = await users.create_user(
            email="host@ceylonbooking.lk", full_name="Nimal Silva", user_type=UserType.HOST, country="LK"
        )
        local = await users.create_user(email="kamal@example.lk", full_name="Kamal Perera", country="LK")
        foreign = await users.create_user(email="jane@example.com", full_name="Jane Smith", country="GB")

        listings = ListingService(db)
        whale_watching = await listings.create_listing(
            CreateListingRequest(
                title="Mirissa Whale Watching",
                description="Morning boat trip off the southern coast",
                inventory_type=InventoryType.SLOT,
                location="Mirissa",
                local_price=Decimal("3500.00"),
                foreign_price=Decimal("50.00"),
                capacity=20,
            ),
            host.id,
        )
        homestay = await listings.create_listing(
            CreateListingRequest(
                title="Ella Hill Homestay",
                description="Two rooms overlooking Little Adam's Peak",
                inventory_type=InventoryType.DATE,
                location="Ella",
                local_price=Decimal("8000.00"),
                foreign_price=Decimal("45.00"),
                capacity=2,
            ),
            host.id,
        )

        logger.info("Sample data created successfully!")
        logger.info(f"Slot listing: {whale_watching.id}")
        logger.info(f"Date listing: {homestay.id}")
        for user in (host, local, foreign):
            logger.info(f"Token for {user.email} ({user.user_type}, {user.country}): {dev_token(user)}")


async def main():
    """Main setup function."""
    logger.info("Starting CeylonBooking API setup...")

    await setup_database()
    await create_sample_data()
    await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn ceylonbooking.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
