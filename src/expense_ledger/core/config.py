"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra environment variables not defined in Settings
    )

    # Application
    APP_NAME: str = "Expense Ledger"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./expense_ledger.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Currencies
    PIVOT_CURRENCY: str = "EUR"
    DEFAULT_CURRENCY: str = "EUR"
    # Cross-currency transfers need a destination amount in the destination
    # account's currency; when disabled they are rejected outright.
    ALLOW_CROSS_CURRENCY_TRANSFERS: bool = False

    # Exchange rate providers, tried in order
    RATE_PROVIDERS: list[str] = ["frankfurter", "fawazahmed_cdn", "fawazahmed_pages"]
    FRANKFURTER_BASE_URL: str = "https://api.frankfurter.app"
    RATE_FETCH_TIMEOUT: float = 10.0
    # Days of fetched rates kept in memory, and refused dates remembered per provider
    RATE_CACHE_DAYS: int = 31
    RATE_FAILED_DATES_LIMIT: int = 366

    # CORS
    CORS_ORIGINS: list[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    # Logging Configuration
    LOGGING_CONFIG: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": "INFO",
            "handlers": ["console"],
        },
        "loggers": {
            # Records reach the console through the root handler
            "expense_ledger": {
                "level": "INFO",
                "handlers": [],
                "propagate": True,
            },
        },
    }


settings = Settings()
