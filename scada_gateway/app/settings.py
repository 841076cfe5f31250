"""Gateway configuration powered by ``pydantic-settings``.

Settings are grouped into typed sections (Supabase backend, Modbus device,
polling behaviour) so the rest of the code never reads ``os.environ``
directly.  Every section is itself a ``BaseSettings`` so it picks up the flat
variable names used by the deployment (``MODBUS_HOST``,
``POLLING_INTERVAL_MS`` ...) as well as the optional ``.env`` file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


def _project_root(base_dir: Path = BASE_DIR) -> Path:
    """Checkout root when running from source, otherwise the working directory."""

    checkout = base_dir.parent.parent
    if (checkout / "pyproject.toml").is_file():
        return checkout
    # instalado em site-packages: .env e logs ficam junto de quem executa
    return Path.cwd()


PROJECT_ROOT = _project_root()
DEFAULT_LOG_DIR = PROJECT_ROOT / "logs"
DEFAULT_CONNECTION_NAME = "modbus_primary"

_ENV_CONFIG = SettingsConfigDict(
    env_file=PROJECT_ROOT / ".env",
    extra="ignore",
)


class SupabaseSettings(BaseSettings):
    """Registry and persistence endpoint."""

    model_config = _ENV_CONFIG

    url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUPABASE_URL", "url")
    )
    service_role_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY", "service_role_key"
        ),
    )

    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key)


class ModbusSettings(BaseSettings):
    """Field controller connection parameters."""

    model_config = _ENV_CONFIG

    host: str = Field(
        default="127.0.0.1", validation_alias=AliasChoices("MODBUS_HOST", "host")
    )
    port: int = Field(default=502, validation_alias=AliasChoices("MODBUS_PORT", "port"))
    slave_id: int = Field(
        default=1, validation_alias=AliasChoices("MODBUS_SLAVE_ID", "slave_id")
    )
    timeout_ms: int = Field(
        default=5000, validation_alias=AliasChoices("MODBUS_TIMEOUT", "timeout_ms")
    )
    reconnect_delay_ms: int = Field(
        default=5000,
        validation_alias=AliasChoices("MODBUS_RECONNECT_DELAY_MS", "reconnect_delay_ms"),
    )
    connection_name: str = Field(
        default=DEFAULT_CONNECTION_NAME,
        validation_alias=AliasChoices("CONNECTION_NAME", "connection_name"),
    )
    connection_type: str = Field(default="modbus_tcp")

    @field_validator("timeout_ms", "reconnect_delay_ms", mode="before")
    @classmethod
    def _coerce_ms(cls, value: Any) -> Any:
        return _int_or_default(value, 5000)

    @property
    def timeout_s(self) -> float:
        return max(float(self.timeout_ms) / 1000.0, 0.1)

    @property
    def reconnect_delay_s(self) -> float:
        return max(float(self.reconnect_delay_ms) / 1000.0, 0.0)


class PollingSettings(BaseSettings):
    """Scan engine and registry timing."""

    model_config = _ENV_CONFIG

    interval_ms: int = Field(
        default=2000,
        validation_alias=AliasChoices("POLLING_INTERVAL_MS", "interval_ms"),
    )
    max_consecutive_errors: int = Field(
        default=5,
        validation_alias=AliasChoices("POLLING_MAX_ERRORS", "max_consecutive_errors"),
    )
    tag_reload_interval_s: float = Field(
        default=300.0,
        validation_alias=AliasChoices("TAG_RELOAD_INTERVAL_S", "tag_reload_interval_s"),
    )

    @field_validator("interval_ms", "max_consecutive_errors", mode="before")
    @classmethod
    def _positive_or_default(cls, value: Any, info: ValidationInfo) -> Any:
        defaults = {"interval_ms": 2000, "max_consecutive_errors": 5}
        return _int_or_default(value, defaults[info.field_name])

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0


class GatewaySettings(BaseSettings):
    """Typed gateway configuration backed by environment variables."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    modbus: ModbusSettings = Field(default_factory=ModbusSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    log_dir: Optional[Path] = Field(
        default=DEFAULT_LOG_DIR, validation_alias=AliasChoices("LOG_DIR", "log_dir")
    )


def _int_or_default(value: Any, default: int) -> int:
    # vazio, zero ou lixo caem no padrão
    if isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def load_settings(**overrides: Any) -> GatewaySettings:
    """Instantiate :class:`GatewaySettings` from the environment."""

    return GatewaySettings(**overrides)


__all__ = [
    "GatewaySettings",
    "ModbusSettings",
    "PollingSettings",
    "SupabaseSettings",
    "load_settings",
]
