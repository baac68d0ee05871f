"""Configuration settings for the CrediBill backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prod).
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[PostgresDsn]): The SQLAlchemy async database URI.
        RUN_ALEMBIC_MIGRATIONS (bool): Whether to run the alembic migrations on startup.
        CREATE_TABLES_ON_STARTUP (bool): Whether to create missing tables on startup.
        SCHEDULER_ENABLED (bool): Whether the billing scheduler runs inside the API process.
        SCHEDULER_CHECK_INTERVAL_SECONDS (int): How often the scheduler checks for due jobs.
        CRON_* (str): Cron expressions (UTC) for each scheduled billing job.
        WEBHOOK_MAX_ATTEMPTS (int): Delivery attempts per outgoing webhook log.
        WEBHOOK_RETRY_DELAYS_MS (str): Delays before each retry in milliseconds, comma separated.
        WEBHOOK_TIMEOUT_SECONDS (float): Timeout for a single outgoing webhook request.
        WEBHOOK_RETRY_BATCH_LIMIT (int): Maximum retries processed per scheduler tick.
        WEBHOOK_STALE_PENDING_MS (int): Age after which a pending delivery is considered lost.
        WEBHOOK_USER_AGENT (str): User agent sent with outgoing webhooks.
        PAYMENT_RETRY_LOOKBACK_DAYS (int): Window for retryable failed transactions.
        PAYMENT_MAX_ATTEMPTS (int): Attempt ceiling for retryable failed transactions.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "CrediBill"
    LOCAL_DEVELOPMENT: bool = False
    ENVIRONMENT: str = "local"

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_DB: str = "credibill"
    POSTGRES_USER: str = "credibill"
    POSTGRES_PASSWORD: str = "credibill"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[PostgresDsn] = None

    RUN_ALEMBIC_MIGRATIONS: bool = False
    CREATE_TABLES_ON_STARTUP: bool = False

    # Scheduler configuration
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_CHECK_INTERVAL_SECONDS: int = 30

    CRON_SCHEDULED_CANCELLATIONS: str = "1-59/10 * * * *"
    CRON_TRIAL_EXPIRATIONS: str = "2-59/10 * * * *"
    CRON_RECURRING_PAYMENTS: str = "3-59/10 * * * *"
    CRON_RETRY_FAILED_PAYMENTS: str = "4-59/10 * * * *"
    CRON_EXPIRED_TRANSACTIONS: str = "5-59/10 * * * *"
    CRON_GRACE_PERIOD_EXPIRATIONS: str = "6-59/10 * * * *"
    CRON_PENDING_INVOICES: str = "7-59/10 * * * *"
    CRON_WEBHOOK_RETRIES: str = "* * * * *"
    CRON_STALE_WEBHOOK_RECOVERY: str = "* * * * *"

    # Outgoing webhooks
    WEBHOOK_MAX_ATTEMPTS: int = 3
    WEBHOOK_RETRY_DELAYS_MS: str = "60000,300000,900000"
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    WEBHOOK_RETRY_BATCH_LIMIT: int = 50
    WEBHOOK_STALE_PENDING_MS: int = 10 * 60 * 1000
    WEBHOOK_USER_AGENT: str = "CrediBill-Webhooks/1.0"

    # Payment transaction sweeps
    PAYMENT_RETRY_LOOKBACK_DAYS: int = 7
    PAYMENT_MAX_ATTEMPTS: int = 3

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> PostgresDsn:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            PostgresDsn: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_HOST", "localhost"),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        )

    @property
    def webhook_retry_delays(self) -> list[int]:
        """The outgoing webhook retry delays.

        Returns:
            list[int]: Delay before each retry, in milliseconds.
        """
        return [
            int(delay.strip()) for delay in self.WEBHOOK_RETRY_DELAYS_MS.split(",") if delay.strip()
        ]


settings = Settings()
