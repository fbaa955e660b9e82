"""Configuration loading utilities for the webhook bridge.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable WEBHOOK_BRIDGE_CONFIG
3. Fallback to "config/default.yaml"

On top of the file, the deployment environment variables the service has
always understood (``DEEPSEEK_API_KEY``, ``DEEPSEEK_MODEL``, ``WEBHOOK_SECRET``,
``PORT`` ...) are mapped into the tree, and finally overrides with prefix
``WEBHOOK_BRIDGE__`` are applied (e.g., WEBHOOK_BRIDGE__COMPLETION__TIMEOUT=10).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_SYSTEM_PROMPT = (
    "Eres un asistente útil, claro y conciso. Responde en español neutro."
)

# env name -> path inside the config tree
_ENV_ALIASES: Dict[str, Tuple[str, ...]] = {
    "DEEPSEEK_API_KEY": ("completion", "api_key"),
    "DEEPSEEK_BASE_URL": ("completion", "base_url"),
    "DEEPSEEK_MODEL": ("completion", "model"),
    "WEBHOOK_SECRET": ("auth", "webhook_secret"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
}


def _coerce(value: str) -> Any:
    """Parse simple scalar types (bool, int, float) from an env string."""
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _set_path(cfg: Dict[str, Any], parts: Tuple[str, ...], value: Any) -> None:
    sub = cfg
    for p in parts[:-1]:
        if p not in sub or not isinstance(sub[p], dict):
            sub[p] = {}
        sub = sub[p]
    sub[parts[-1]] = value


def _apply_env_aliases(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Map the plain deployment variables onto their config keys."""
    for name, parts in _ENV_ALIASES.items():
        value = os.environ.get(name)
        if value is None:
            continue
        # Secrets and model names stay strings; only the port is numeric.
        if name == "PORT":
            try:
                value = int(value)
            except ValueError as e:
                raise RuntimeError(f"Invalid PORT value {value!r}, expected an integer.") from e
        _set_path(cfg, parts, value)
    return cfg


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix WEBHOOK_BRIDGE__."""
    prefix = "WEBHOOK_BRIDGE__"
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        # e.g., WEBHOOK_BRIDGE__COMPLETION__MODEL -> cfg["completion"]["model"]
        parts = tuple(key[len(prefix):].lower().split("__"))
        _set_path(cfg, parts, _coerce(value))
    return cfg


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the webhook bridge.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``WEBHOOK_BRIDGE_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration dictionary with environment overrides applied.
    """
    # Values already present in the environment always win over .env
    load_dotenv(find_dotenv(usecwd=True), override=False)

    if path is None:
        path = os.environ.get("WEBHOOK_BRIDGE_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        cfg: Dict[str, Any] = {}
    else:
        with path_obj.open("r", encoding="utf-8") as f:
            try:
                cfg = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise RuntimeError(f"Failed to parse config file {path_obj}: {e}") from e

        if not isinstance(cfg, dict):
            raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_apply_env_aliases(cfg))


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    sub = cfg.get(name)
    return sub if isinstance(sub, dict) else {}


@dataclass(frozen=True)
class BridgeSettings:
    """Typed view over the configuration tree."""

    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = 30.0
    webhook_secret: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_body_bytes: int = 1024 * 1024

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "BridgeSettings":
        completion = _section(cfg, "completion")
        auth = _section(cfg, "auth")
        server = _section(cfg, "server")
        prompt = _section(cfg, "prompt")

        secret = auth.get("webhook_secret")
        return cls(
            api_key=completion.get("api_key") or None,
            base_url=str(completion.get("base_url") or DEFAULT_BASE_URL),
            model=str(completion.get("model") or DEFAULT_MODEL),
            timeout=float(completion.get("timeout", 30.0)),
            webhook_secret=str(secret) if secret else None,
            system_prompt=str(prompt.get("system_prompt") or DEFAULT_SYSTEM_PROMPT),
            host=str(server.get("host", "0.0.0.0")),
            port=int(server.get("port", 3000)),
            cors_origins=list(server.get("cors_origins") or ["*"]),
            max_body_bytes=int(server.get("max_body_bytes", 1024 * 1024)),
        )
