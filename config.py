"""
Application settings, read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """Application settings."""

    app_name: str = "VideoTube API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    port: int = 8000
    api_prefix: str = "/api/v1"

    # Database
    mongodb_uri: str = "mongodb://localhost:27017"
    database_name: str = "videotube"
    mongo_timeout_ms: int = 5000

    # Tokens
    access_token_secret: str = "change-me-access"
    access_token_expiry_minutes: int = 60
    refresh_token_secret: str = "change-me-refresh"
    refresh_token_expiry_days: int = 10

    # Media host
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    media_timeout_seconds: float = 60.0

    # Local staging for multipart uploads
    upload_dir: str = os.path.join(os.getcwd(), "public", "temp")

    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        """Override defaults with environment variables."""
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()
        self.port = int(os.getenv("PORT", self.port))

        self.mongodb_uri = os.getenv("MONGODB_URI", self.mongodb_uri)
        self.database_name = os.getenv("DATABASE_NAME", self.database_name)
        self.mongo_timeout_ms = int(os.getenv("MONGO_TIMEOUT_MS", self.mongo_timeout_ms))

        self.access_token_secret = os.getenv("ACCESS_TOKEN_SECRET", self.access_token_secret)
        self.access_token_expiry_minutes = int(
            os.getenv("ACCESS_TOKEN_EXPIRY_MINUTES", self.access_token_expiry_minutes)
        )
        self.refresh_token_secret = os.getenv("REFRESH_TOKEN_SECRET", self.refresh_token_secret)
        self.refresh_token_expiry_days = int(
            os.getenv("REFRESH_TOKEN_EXPIRY_DAYS", self.refresh_token_expiry_days)
        )

        self.cloudinary_cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME", self.cloudinary_cloud_name)
        self.cloudinary_api_key = os.getenv("CLOUDINARY_API_KEY", self.cloudinary_api_key)
        self.cloudinary_api_secret = os.getenv("CLOUDINARY_API_SECRET", self.cloudinary_api_secret)
        self.media_timeout_seconds = float(
            os.getenv("MEDIA_TIMEOUT_SECONDS", self.media_timeout_seconds)
        )

        self.upload_dir = os.getenv("UPLOAD_DIR", self.upload_dir)

        origins = os.getenv("CORS_ORIGIN")
        if origins:
            self.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()
