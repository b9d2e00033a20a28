"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``DAGWALLET_``, nested via ``__``)
2. YAML config file (``config_path`` field or ``DAGWALLET_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class RPCScheme(enum.StrEnum):
    """URL scheme used to reach a node's HTTP endpoint."""

    HTTP = "http"
    HTTPS = "https"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class RPCConfig(BaseSettings):
    """Ledger node JSON-RPC settings."""

    model_config = SettingsConfigDict(
        env_prefix="DAGWALLET_RPC__",
        case_sensitive=False,
    )

    scheme: RPCScheme = RPCScheme.HTTP
    endpoint: str = Field(
        default="/ext/bc/avm",
        description="Path of the chain's JSON-RPC endpoint on the node",
    )
    method_prefix: str = "avm"
    asset_id: str = "AVAX"
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-call timeout in seconds; every RPC call is bounded",
    )


class StashConfig(BaseSettings):
    """On-disk stash for UTXO exports."""

    model_config = SettingsConfigDict(
        env_prefix="DAGWALLET_STASH__",
        case_sensitive=False,
    )

    data_dir: str = "./stash"


class NodeEndpoint(BaseModel):
    """Where a running ledger node serves HTTP."""

    host: str = "127.0.0.1"
    http_port: int = Field(default=9650, ge=1, le=65535)


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level wallet engine configuration.

    Loads settings from environment variables (``DAGWALLET_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGWALLET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    rpc: RPCConfig = Field(default_factory=RPCConfig)
    stash: StashConfig = Field(default_factory=StashConfig)
    nodes: dict[str, NodeEndpoint] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
