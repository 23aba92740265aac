"""Database configuration settings."""

from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL, make_url

from muzi.config.constants import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_DB_DRIVER,
    DEFAULT_DB_HOST,
    DEFAULT_DB_NAME,
    DEFAULT_DB_PASSWORD,
    DEFAULT_DB_PORT,
    DEFAULT_DB_USER,
    DEFAULT_MAINTENANCE_DB,
)


class DatabaseSettings(BaseSettings):
    """Database connection settings loaded from environment variables.

    ``database_url`` wins when set; otherwise the URL is assembled from the
    individual host/port/name/credential fields.
    """

    database_url: str = ""
    db_driver: str = DEFAULT_DB_DRIVER
    db_host: str = DEFAULT_DB_HOST
    db_port: int = DEFAULT_DB_PORT
    db_name: str = DEFAULT_DB_NAME
    db_user: str = DEFAULT_DB_USER
    db_password: str = DEFAULT_DB_PASSWORD
    maintenance_db: str = DEFAULT_MAINTENANCE_DB

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    echo: bool = False
    use_null_pool: bool = True
    pool_pre_ping: bool = True

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @property
    def url(self) -> URL:
        """SQLAlchemy URL of the history database."""
        if self.database_url:
            return make_url(self.database_url)
        return URL.create(
            self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )

    @property
    def maintenance_url(self) -> URL:
        """URL of the server's maintenance database, used to create the history database."""
        return self.url.set(database=self.maintenance_db)
