"""
Application configuration.
Values are read from the environment (and an optional .env file) once at import.
"""
import os
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_DEV_JWT_SECRET = "dev-access-secret-change-me"
_DEV_JWT_REFRESH_SECRET = "dev-refresh-secret-change-me"

# Database
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "blood_bank")

# Credentials
JWT_SECRET = os.getenv("JWT_SECRET", _DEV_JWT_SECRET)
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", _DEV_JWT_REFRESH_SECRET)
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "15"))
JWT_REFRESH_EXPIRES_DAYS = int(os.getenv("JWT_REFRESH_EXPIRES_DAYS", "7"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Blood stock ledger
UNIT_SHELF_LIFE_DAYS = 35
ASSUMED_UNIT_VOLUME_ML = 350
CRITICAL_LEVEL_ML = 500
EXPIRING_SOON_DAYS = 7


def using_dev_secrets() -> bool:
    return JWT_SECRET == _DEV_JWT_SECRET or JWT_REFRESH_SECRET == _DEV_JWT_REFRESH_SECRET
