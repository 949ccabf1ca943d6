"""Application configuration read from the environment."""
import os
from typing import List, Optional

from dotenv import load_dotenv


class Config:
    load_dotenv()

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./travel.db")

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Startup seeding
    SEED_DATA: bool = os.getenv("SEED_DATA", "true").lower() == "true"
    ADMIN_EMAIL: Optional[str] = os.getenv("ADMIN_EMAIL")
    ADMIN_PASSWORD: Optional[str] = os.getenv("ADMIN_PASSWORD")

    # External geocoder used by destination search
    GEOCODER_URL: str = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
    GEOCODER_TIMEOUT: float = float(os.getenv("GEOCODER_TIMEOUT", "5"))
    GEOCODER_USER_AGENT: str = os.getenv("GEOCODER_USER_AGENT", "OdysseyTravelApp/1.0")

    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]
