"""Gateway client configuration loading and validation."""

from __future__ import annotations

import json
import os
import platform
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/gateway/client.yaml"),
    Path("/etc/gateway/client.yml"),
    Path("./config/client.yaml"),
    Path("./config/client.yml"),
)


class GatewaySettings(BaseSettings):
    """Validated, immutable settings for one gateway connection."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Endpoint + credentials
    url: AnyUrl = Field(
        default="wss://gateway.discord.gg/",
        description="Gateway WebSocket endpoint.",
    )
    token: str = Field(
        description="Session credential sent in IDENTIFY.",
        repr=False,
    )
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )

    # Reconnect backoff
    reconnect_fast_window_seconds: PositiveFloat = Field(
        default=60.0,
        description="A disconnect closer than this to the previous one counts as a fast failure.",
    )
    reconnect_delay_min_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Lower bound of the randomised delay applied after a fast failure.",
    )
    reconnect_delay_max_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Upper bound of the randomised delay applied after a fast failure.",
    )

    # IDENTIFY payload
    identify_large_threshold: int = Field(
        default=250,
        ge=50,
        le=250,
        description="Member count above which the gateway treats a guild as large.",
    )
    identify_compress: bool = Field(
        default=False,
        description="Whether to request compressed dispatch payloads.",
    )
    identify_os: str = Field(
        default_factory=platform.system,
        description="Operating system reported in IDENTIFY properties.",
    )
    identify_browser: str = Field(
        default="python",
        description="Library name reported in IDENTIFY properties.",
    )
    identify_device: str = Field(
        default="python",
        description="Device name reported in IDENTIFY properties.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the bootstrap entry point.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "GatewaySettings":
        if self.reconnect_delay_max_seconds < self.reconnect_delay_min_seconds:
            raise ValueError("reconnect_delay_max_seconds must be >= reconnect_delay_min_seconds")
        return self

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[GatewaySettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[GatewaySettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = GatewaySettings._resolve_candidate_paths()

        for path in candidates:
            data = GatewaySettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("GATEWAY_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read gateway config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid gateway config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Gateway config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> GatewaySettings:
    """Return memoized gateway settings."""

    return GatewaySettings()
