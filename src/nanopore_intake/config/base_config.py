# ============================================================================
# src/nanopore_intake/config/base_config.py
# ============================================================================
"""
Base Configuration
- Project root
- Data and upload directories
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseSettingsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Root project directory
    PROJECT_ROOT: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent.parent,
        description="Root directory of the project"
    )

    # Working data
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Directory for working data"
    )

    # Uploaded submission forms
    UPLOADS_DIR: Path = Field(
        default=Path("data/uploads"),
        description="Where the HTTP API stores uploaded forms"
    )

    # Uploads larger than this are rejected as input errors
    MAX_UPLOAD_BYTES: int = Field(
        default=25 * 1024 * 1024,
        description="Maximum accepted upload size in bytes"
    )

    def create_directories(self):
        """Create all necessary directories if they don't exist"""
        for directory in (self.DATA_DIR, self.UPLOADS_DIR):
            directory.mkdir(parents=True, exist_ok=True)


# Global instance
base_settings = BaseSettingsConfig()
