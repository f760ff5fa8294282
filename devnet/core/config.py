"""
Application configuration using Pydantic BaseSettings.
Reads configuration from environment variables (12-factor style).
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # MongoDB connection
    MONGO_URI: str = Field("mongodb://localhost:27017")
    MONGO_DB: str = Field("devnet")
    MONGO_TIMEOUT_MS: int = Field(5000)  # serverSelectionTimeoutMS

    # JWT (JSON Web Token) settings
    JWT_SECRET: str = Field(...)  # must be set in env
    JWT_ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60)

    # Uploads
    UPLOAD_FOLDER: str = Field("./uploads")
    MAX_IMAGE_BYTES: int = Field(5 * 1024 * 1024)
    MAX_UPLOAD_FILES: int = Field(5)
    MAX_JSON_BODY_BYTES: int = Field(2 * 1024 * 1024)

    # Domain limits
    MAX_CV_PROFILES: int = Field(5)
    CONTENT_WRITE_RETRIES: int = Field(5)
    DEFAULT_PAGE_SIZE: int = Field(10)
    MAX_PAGE_SIZE: int = Field(100)

    # App
    APP_NAME: str = "devnet-backend"
    LOG_DIR: str = Field("logs")
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )

    class Config:
        env_file = ".env"        # local development .env file
        env_file_encoding = "utf-8"
        extra = "ignore"


# Single settings instance imported across the app
settings = Settings()
