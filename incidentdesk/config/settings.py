"""Application settings via Pydantic BaseSettings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings

from incidentdesk.exceptions import ConfigError

LOCAL_USERNAME = "admin@localhost"


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Backends: in-process fakes unless USE_AWS=true
    use_aws: bool = False
    local_data_dir: str = "~/.incidentdesk"

    # Identity
    auth_mode: Literal["single", "cognito"] = "single"
    aws_region: str = "us-east-1"
    user_pool_id: str | None = None
    user_pool_client_id: str | None = None
    rollback_failed_provisioning: bool = True
    group_lookup_concurrency: int = 10

    # Hosted data API (AppSync GraphQL)
    data_api_url: str | None = None
    data_api_key: str | None = None

    # Object storage
    storage_bucket: str | None = None
    s3_endpoint_url: str | None = None
    photo_prefix: str = "incident-photos"

    # Detection service
    detection_url: str | None = None
    detection_timeout: float = 300.0
    reported_peril: str = ""

    # Provisioning scripts
    bootstrap_pool_name: str = "incidentdesk-userpool"
    bootstrap_client_name: str = "incidentdesk-web-client"
    bootstrap_admin_email: str = "admin@example.com"
    bootstrap_admin_password: str | None = None

    @property
    def jwks_url(self) -> str:
        return (
            f"https://cognito-idp.{self.aws_region}.amazonaws.com/"
            f"{self.user_pool_id}/.well-known/jwks.json"
        )

    @property
    def token_issuer(self) -> str:
        return f"https://cognito-idp.{self.aws_region}.amazonaws.com/{self.user_pool_id}"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    settings = Settings()
    if settings.use_aws:
        missing = [
            name
            for name in ("user_pool_id", "storage_bucket", "data_api_url")
            if not getattr(settings, name)
        ]
        if missing:
            msg = f"USE_AWS=true requires {', '.join(m.upper() for m in missing)}"
            raise ConfigError(msg)
    if settings.auth_mode == "cognito" and not settings.user_pool_id:
        msg = "AUTH_MODE=cognito requires USER_POOL_ID"
        raise ConfigError(msg)
    return settings
