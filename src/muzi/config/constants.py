"""Default connection parameters for the history store."""

DEFAULT_DB_DRIVER = "postgresql+asyncpg"
DEFAULT_DB_HOST = "localhost"
DEFAULT_DB_PORT = 5432
DEFAULT_DB_NAME = "muzi"
DEFAULT_DB_USER = "postgres"
DEFAULT_DB_PASSWORD = "postgres"
DEFAULT_MAINTENANCE_DB = "postgres"
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
