import os
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.engine import URL


# Short connection names accepted in DB_CONNECTION
DRIVER_NAMES: Dict[str, str] = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql+psycopg2",
    "postgres": "postgresql+psycopg2",
    "sqlite": "sqlite",
}

# Forced client text encoding, keyed by dialect
ENCODING_OPTIONS: Dict[str, Dict[str, str]] = {
    "mysql": {"charset": "utf8mb4"},
    "postgresql": {"client_encoding": "utf8"},
}


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables.

    Built with ``Config.from_env()`` so values loaded from a ``.env`` file
    by the application are picked up.
    """

    DB_CONNECTION: str = ""
    DB_HOST: str = ""
    DB_PORT: str = ""
    DB_DATABASE: str = ""
    DB_USERNAME: str = ""
    DB_PASSWORD: str = ""
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "WARNING"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            DB_CONNECTION=os.getenv("DB_CONNECTION", ""),
            DB_HOST=os.getenv("DB_HOST", ""),
            DB_PORT=os.getenv("DB_PORT", ""),
            DB_DATABASE=os.getenv("DB_DATABASE", ""),
            DB_USERNAME=os.getenv("DB_USERNAME", ""),
            DB_PASSWORD=os.getenv("DB_PASSWORD", ""),
            ENVIRONMENT=os.getenv("ENVIRONMENT", "production"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "WARNING").upper(),
            HOST=os.getenv("HOST", "0.0.0.0"),
            PORT=int(os.getenv("PORT", "8080")),
        )

    def validate(self) -> None:
        if not self.DB_CONNECTION:
            raise ValueError("DB_CONNECTION environment variable is required")
        if not self.DB_DATABASE:
            raise ValueError("DB_DATABASE environment variable is required")

    def database_url(self) -> URL:
        """Build the SQLAlchemy URL for the configured connection.

        Returns:
            URL with the driver, credentials and forced text encoding
        """
        self.validate()
        drivername = DRIVER_NAMES.get(self.DB_CONNECTION.lower(), self.DB_CONNECTION)
        dialect = drivername.split("+", 1)[0]

        if dialect == "sqlite":
            return URL.create(drivername, database=self.DB_DATABASE)

        return URL.create(
            drivername,
            username=self.DB_USERNAME or None,
            password=self.DB_PASSWORD or None,
            host=self.DB_HOST or None,
            port=_port(self.DB_PORT),
            database=self.DB_DATABASE,
            query=ENCODING_OPTIONS.get(dialect, {}),
        )


def _port(value: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"DB_PORT must be a number, got {value!r}") from None
