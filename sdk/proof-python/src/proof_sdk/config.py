"""SDK-level configuration loaded from environment and overridable at runtime."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from proof_sdk.logger import logger

LOCAL_CONNECT_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 11434
APP_DIR_NAME = "proof"


def user_config_dir() -> Path:
    """Return the platform's per-user configuration directory."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"

    if base := os.environ.get("XDG_CONFIG_HOME"):
        return Path(base)
    return Path.home() / ".config"


def default_storage_root() -> Path:
    """Directory holding `settings.json` and the `sessions/` folder."""
    return user_config_dir() / APP_DIR_NAME


class BaseProofSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PROOF_SDK_", extra="ignore")


class ConnectionSettings(BaseProofSettings):
    scheme: str = "http"
    host: str = LOCAL_CONNECT_HOST
    port: int = DEFAULT_SERVER_PORT
    health_timeout: float = 2.0
    request_timeout: float | None = None

    @field_validator("host", mode="after")
    @classmethod
    def warn_on_remote_host(cls, host: str) -> str:
        if host not in (LOCAL_CONNECT_HOST, "localhost", "::1"):
            logger.warning(f"Model server host {host} is not a loopback address")
        return host


class SupervisorSettings(BaseProofSettings):
    executable: str = "ollama"
    poll_interval: float = Field(default=0.5, ge=0)
    poll_attempts: int = Field(default=10, ge=0)


class StorageSettings(BaseProofSettings):
    storage_root: Path = Field(default_factory=default_storage_root)


class SDKSettings(BaseModel):
    """Global SDK settings for server connectivity, supervision and storage."""

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    def get_locked(self) -> FrozenSDKSettings:
        payload = self.model_dump()
        return FrozenSDKSettings.model_validate(payload)


class FrozenSDKSettings(SDKSettings):
    model_config = ConfigDict(frozen=True)


settings = SDKSettings()


def get_sdk_config() -> FrozenSDKSettings:
    """Return an immutable snapshot of current global SDK settings."""
    return settings.get_locked()
