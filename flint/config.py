"""Application configuration via environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./flint.db"
    log_level: str = "INFO"

    # Provider selection
    banking_provider: str = "mock"  # "mock" or "teller"
    teller_api_url: str = "https://api.teller.io"
    teller_cert_path: Optional[str] = None
    teller_key_path: Optional[str] = None

    # Mock provider behaviour
    mock_failure_rate: float = 0.0
    mock_latency_ms: int = 0
    mock_settle_after: int = 2  # status polls before a mock submission settles
    mock_mfa_accounts: list[str] = []

    trade_preview_ttl_seconds: int = 120

    csrf_cookie_name: str = "flint_csrf"
    csrf_cookie_secure: bool = False

    # Client workflow
    api_base_url: str = "http://localhost:8000"
    payment_poll_interval: float = 2.5
    payment_poll_max_attempts: int = 30
    order_poll_interval: float = 3.0
    order_poll_max_attempts: int = 20
    request_timeout: float = 15.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
