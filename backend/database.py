"""
MongoDB connection (motor) and index setup.
"""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config import MONGO_URL, DB_NAME

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(
    MONGO_URL,
    maxPoolSize=10,
    serverSelectionTimeoutMS=5000,
    socketTimeoutMS=45000,
)
db = client[DB_NAME]


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the application database."""
    return db


async def create_indexes(database: AsyncIOMotorDatabase):
    await database.blood_units.create_index("id", unique=True)
    await database.blood_units.create_index([("hospital_id", 1), ("blood_type", 1), ("status", 1)])
    await database.blood_units.create_index("expiry_date")
    await database.blood_units.create_index("batch_id")

    await database.hospitals.create_index("id", unique=True)
    await database.hospitals.create_index("license_number", unique=True)

    await database.users.create_index("id", unique=True)
    await database.users.create_index("email", unique=True)

    await database.donors.create_index("id", unique=True)
    await database.donors.create_index([("hospital_id", 1), ("blood_type", 1)])
    await database.donors.create_index("phone")

    await database.blood_requests.create_index("id", unique=True)
    await database.blood_requests.create_index("request_id", unique=True)
    await database.blood_requests.create_index([("hospital_id", 1), ("status", 1), ("created_at", -1)])

    await database.audit_logs.create_index([("hospital_id", 1), ("timestamp", -1)])
    logger.info("MongoDB indexes ensured on %s", DB_NAME)


def close_client():
    client.close()
    logger.info("MongoDB connection closed")
