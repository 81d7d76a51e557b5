# backoffice/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./backoffice.db"

    # Frontend (CORS)
    FRONTEND_URLS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Product status monitor
    STATUS_MONITOR_ENABLED: bool = True
    STATUS_CHECK_INTERVAL_SECONDS: int = 24 * 60 * 60

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # Invoicing
    INVOICE_DUE_DAYS: int = 15
    INVOICE_TAX_RATE: float = 0.15

    # Business details printed on invoices
    BUSINESS_NAME: str = "Your Business Name"
    BUSINESS_ADDRESS: str = "City, State, PIN - 000 000"
    BUSINESS_TAX_ID: str = "TAX ID 000000XX1234000XX"
    BUSINESS_PHONE: str = "+91 00000 00000"
    BUSINESS_EMAIL: str = "hello@email.com"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
