from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "MEDGATE_",
        "extra": "ignore",
    }

    # SQLAlchemy URL; local SQLite file when nothing is configured
    database_url: str = "sqlite:///./medgate.db"

    # Every caller proves its identity by signing with a provisioned key.
    # Turning this off trusts X-Caller-Id for identities without a key (local demos only).
    require_signatures: bool = True

    # Credential for provisioning caller keys; empty disables provisioning
    admin_token: str = ""

    log_level: str = "INFO"

    # Default page size of the notification feed (hard cap 500)
    notification_page_size: int = 100


settings = Settings()
