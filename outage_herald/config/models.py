"""Pydantic models describing the herald configuration tree."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class DefaultsConfig(BaseModel):
    """Polling, flood-control and command defaults."""

    command_prefix: str = "!outage"
    flood_protect_wait_ms: int = 1500
    command_flood_protect_wait_ms: int = 500
    polling_frequency_minutes: float = 5
    cache_dir: Path = Field(default=Path("data/cache"))

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_values(self) -> "DefaultsConfig":
        if not self.command_prefix.strip() or len(self.command_prefix.split()) != 1:
            raise ValueError("command_prefix must be a single non-empty token")
        if self.flood_protect_wait_ms < 0 or self.command_flood_protect_wait_ms < 0:
            raise ValueError("flood protection delays must be >= 0")
        if self.polling_frequency_minutes <= 0:
            raise ValueError("polling_frequency_minutes must be > 0")
        return self


class FeedsConfig(BaseModel):
    """Feed URLs keyed by source identifier."""

    rss: dict[str, str] = Field(default_factory=dict)

    @field_validator("rss")
    @classmethod
    def _validate_urls(cls, value: dict[str, str]) -> dict[str, str]:
        for source_id, url in value.items():
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Feed URL for '{source_id}' must be an HTTP(S) URL")
        return value


class AccountConfig(BaseModel):
    """NickServ account; password is prompted for when left empty."""

    account: str = ""
    password: str = ""


class ClientCertificateConfig(BaseModel):
    """Path to a PEM bundle holding the private key followed by the certificate."""

    from_file: Path

    @field_validator("from_file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


class ServerConfig(BaseModel):
    """Connection parameters for the IRC server."""

    host: str = "irc.libera.chat"
    port: int = 6697
    tls: bool = True
    nick: str = "outage-herald"
    username: str | None = None
    realname: str = "outage-herald"
    account: AccountConfig | None = None
    client_certificate: ClientCertificateConfig | None = None

    @model_validator(mode="after")
    def _validate_tls(self) -> "ServerConfig":
        if self.client_certificate is not None and not self.tls:
            raise ValueError("client_certificate requires tls to be enabled")
        return self

    def needs_password_prompt(self) -> bool:
        return (
            self.account is not None
            and not self.account.password
            and self.client_certificate is None
        )


class IRCConfig(BaseModel):
    """Channel and session behaviour."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    channel: str = "#outages"
    force_auth_after_reg: bool = False
    shutdown_grace_seconds: float = 1.0

    @field_validator("channel")
    @classmethod
    def _validate_channel(cls, value: str) -> str:
        if not value.startswith(("#", "&")):
            raise ValueError("channel must start with '#' or '&'")
        return value


class HeraldConfig(BaseModel):
    """Top-level configuration document."""

    default: DefaultsConfig = Field(default_factory=DefaultsConfig)
    feeds: FeedsConfig = Field(default_factory=FeedsConfig)
    irc: IRCConfig = Field(default_factory=IRCConfig)
    fetch_timeout_seconds: float = 30.0

    def resolved_cache_dir(self, base_dir: Path) -> Path:
        """Return the marker directory relative to the project root."""

        cache_dir = self.default.cache_dir
        if not cache_dir.is_absolute():
            return (base_dir / cache_dir).resolve()
        return cache_dir


__all__ = [
    "AccountConfig",
    "ClientCertificateConfig",
    "DefaultsConfig",
    "FeedsConfig",
    "HeraldConfig",
    "IRCConfig",
    "ServerConfig",
]
