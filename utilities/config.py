"""
Configuration management using environment variables.
Handles server, database and logging settings with validation and defaults.
"""

from typing import List, Optional
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """
    Configuration class for the Book Store API.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=4000, description="Listen port (PORT)")
    environment: str = Field(default="production", description="production or development")

    # MongoDB Configuration
    mongo_uri: str = Field(
        default="mongodb://localhost:27017/bookstore",
        description="MongoDB connection string (MONGO_URI)"
    )
    mongodb_database: str = Field(
        default="bookstore",
        description="Database used when the connection string names none"
    )
    mongodb_collection: str = Field(default="books")
    mongo_timeout_ms: int = Field(default=5000, description="Server selection timeout")

    # CORS Settings
    cors_origins: List[str] = ["*"]
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["*"]

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Ensure port is a usable TCP port."""
        if v < 1 or v > 65535:
            raise ValueError('port must be between 1 and 65535')
        return v

    @field_validator('mongo_timeout_ms')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 100 or v > 120000:
            raise ValueError('mongo_timeout_ms must be between 100 and 120000')
        return v

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        return v.lower()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra fields from .env
    }

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


# Global configuration instance
config = AppConfig()
