"""Application configuration from environment variables."""
import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env.backend file."""

    APP_NAME: str = "FileStore"
    APP_DATA_PATH: str = "./backend/data"
    FILE_STORAGE_PATH: str = ""  # empty -> APP_DATA_PATH/Data/Files
    TEMP_PATH: str = ""  # empty -> <system temp>/APP_NAME

    # Content hashing and copy chunking
    HASH_ALGORITHM: str = "md5"
    HASH_CHUNK_SIZE: int = Field(default=64 * 1024, gt=0)

    # Serialize uploads within one process so concurrent identical uploads dedup
    SERIALIZE_UPLOADS: bool = False

    API_PORT: int = 8721
    CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env.backend"
        env_file_encoding = "utf-8"

    @property
    def storage_root(self) -> Path:
        """Flat directory holding managed files."""
        if self.FILE_STORAGE_PATH:
            return Path(self.FILE_STORAGE_PATH)
        return Path(self.APP_DATA_PATH) / "Data" / "Files"

    @property
    def temp_root(self) -> Path:
        """Process-scoped temp directory, outside the storage root."""
        if self.TEMP_PATH:
            return Path(self.TEMP_PATH)
        return Path(tempfile.gettempdir()) / self.APP_NAME


settings = Settings()
