"""Pydantic-based configuration helpers for the leave mail bot."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

DEFAULT_GREYTHR_API_URL = "https://api.greythr.com/"


class AppSettings(BaseModel):
    """Settings required to receive Graph notifications and talk to greytHR."""

    bot_app_id: str = Field(..., alias="BOT_APP_ID")
    bot_app_secret: str = Field(..., alias="BOT_APP_SECRET")
    tenant_id: str = Field(..., alias="TENANT_ID")
    openai_api_key: str = Field(..., alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-5-nano", alias="OPENAI_MODEL")
    public_url: str = Field(..., alias="PUBLIC_URL")
    port: int = Field(3978, alias="PORT")
    use_https: bool = Field(False, alias="USE_HTTPS")
    ssl_cert_path: str | None = Field(None, alias="SSL_CERT_PATH")
    ssl_key_path: str | None = Field(None, alias="SSL_KEY_PATH")
    monitored_email: str = Field(..., alias="MONITORED_EMAIL")
    default_leave_type: str = Field("Sick Leave", alias="DEFAULT_LEAVE_TYPE")
    manager_required: bool = Field(False, alias="MANAGER_REQUIRED")
    greythr_api_url: str = Field(DEFAULT_GREYTHR_API_URL, alias="GREYTHR_API_URL")
    greythr_auth_url: str = Field(..., alias="GREYTHR_AUTH_URL")
    greythr_domain: str = Field(..., alias="GREYTHR_DOMAIN")
    greythr_username: str = Field(..., alias="GREYTHR_USERNAME")
    greythr_password: str = Field(..., alias="GREYTHR_PASSWORD")
    logs_dir: str = Field("logs", alias="LOGS_DIR")
    graph_client_state: str | None = Field(None, alias="GRAPH_CLIENT_STATE")

    model_config = {"populate_by_name": True}

    @field_validator(
        "bot_app_id",
        "bot_app_secret",
        "tenant_id",
        "openai_api_key",
        "public_url",
        "monitored_email",
        "greythr_auth_url",
        "greythr_domain",
        "greythr_username",
        "greythr_password",
    )
    @classmethod
    def _ensure_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("greythr_api_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else f"{value}/"

    @field_validator("greythr_auth_url", "public_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("ssl_cert_path", "ssl_key_path", "graph_client_state", mode="before")
    @classmethod
    def _empty_as_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("port")
    @classmethod
    def _ensure_port(cls, value: int) -> int:
        if value <= 0 or value > 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return value

    @model_validator(mode="after")
    def _require_certificates_for_https(self):
        if self.use_https and not (self.ssl_cert_path and self.ssl_key_path):
            raise ValueError("SSL_CERT_PATH and SSL_KEY_PATH are required when USE_HTTPS is enabled")
        return self


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


def load_settings(environ) -> AppSettings:
    """Validate *environ* into settings, raising ``RuntimeError`` on failure."""

    try:
        return AppSettings.model_validate(dict(environ))
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if missing:
            message = (
                "Missing required environment variables: "
                f"{_format_missing(missing)}"
            )
        else:
            message = f"Invalid configuration: {exc}"
        raise RuntimeError(message) from exc


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    load_dotenv(os.environ.get("DOTENV_PATH", ".env"), override=False)
    return load_settings(os.environ)
