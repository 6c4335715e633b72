"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Public URL of the web app, used to build one-time access links.
    app_base_url: str = "http://localhost:3000"
    # Comma-separated. Empty = default list in main.py.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS
    # ===========================================
    redis_url: str  # Required, no default

    # ===========================================
    # IDENTITY PROVIDER (session JWT verification)
    # ===========================================
    identity_jwt_secret: str  # Required, no default
    identity_jwt_algorithm: str = "HS256"
    identity_jwt_audience: str | None = None
    identity_jwt_issuer: str | None = None

    # ===========================================
    # ACCESS TOKENS & DISPUTES
    # ===========================================
    token_salt: str = ""
    access_token_ttl_minutes: int = 30
    # How long used/expired tokens are kept before cleanup removes them.
    access_token_retention_hours: int = 24
    dispute_resolution_days: int = 3

    # ===========================================
    # OFFERS
    # ===========================================
    default_currency: str = "PLN"
    offers_page_max_limit: int = 100

    # ===========================================
    # PAYMENTS
    # ===========================================
    payment_provider: str = "simulated"  # simulated, http
    payment_provider_name: str = "stripe"
    payment_provider_url: str = ""
    payment_provider_api_key: str = ""
    # Shared secret for X-Payment-Signature. Empty = signature not checked.
    payment_webhook_secret: str = ""
    http_client_timeout: float = 10.0

    # ===========================================
    # RATE LIMITS & IDEMPOTENCY
    # ===========================================
    purchase_rate_limit_attempts: int = 5
    purchase_rate_limit_window_seconds: int = 60
    idempotency_ttl: int = 300  # 5 minutes

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("access_token_ttl_minutes", "dispute_resolution_days", "idempotency_ttl")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive number")
        return v

    @field_validator("payment_provider")
    @classmethod
    def validate_payment_provider(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("simulated", "http"):
            raise ValueError("payment_provider must be 'simulated' or 'http'")
        return v

    @model_validator(mode="after")
    def validate_token_salt(self) -> "Settings":
        """Outside local/test environments the token salt must be set and non-trivial."""
        if self.app_env not in ("local", "test") and len(self.token_salt) < 16:
            raise ValueError("token_salt must be at least 16 characters outside local/test")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
