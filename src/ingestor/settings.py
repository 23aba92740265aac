"""Ingestion service configuration loaded from environment variables."""

from pydantic_settings import BaseSettings

from muzi.zip_import.platforms import Platform


class ImporterSettings(BaseSettings):
    """Ingestion service configuration."""

    # Working directories
    IMPORT_ARCHIVE_DIR: str = "./imports/spotify/zip"
    IMPORT_EXTRACT_DIR: str = "./imports/spotify/extracted"

    IMPORT_PLATFORM: Platform = Platform.SPOTIFY

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}
