"""
Runtime Configuration for devagent.

Provides a singleton RuntimeConfig class that allows dynamic adjustment of
model parameters at runtime, without requiring service restart.

Usage:
    from config import runtime_config
    model = runtime_config.model_chat
    runtime_config.update(temperature=0.2, max_output_tokens=2048)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
from threading import Lock

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.anthropic.com/v1/messages"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-7-sonnet-latest"


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Model provider connection
    llm_api_key: str = field(
        default_factory=lambda: _first_env("LLM_API_KEY", "ANTHROPIC_API_KEY", default=""),
        repr=False,
    )
    llm_endpoint: str = field(default_factory=lambda: _first_env("LLM_ENDPOINT", default=DEFAULT_ENDPOINT))
    llm_api_version: str = field(default_factory=lambda: _first_env("LLM_API_VERSION", default=DEFAULT_API_VERSION))
    llm_timeout: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "180")))

    # Model parameters
    model_chat: str = field(default_factory=lambda: _first_env("LLM_CHAT_MODEL", default=DEFAULT_MODEL))
    temperature: float = field(default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.7")))
    max_output_tokens: int = field(default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "4000")))

    # Tool execution
    command_timeout: float = field(default_factory=lambda: float(os.environ.get("TOOL_COMMAND_TIMEOUT", "30")))
    workspace_dir: str = field(default_factory=lambda: os.environ.get("WORKSPACE_DIR", os.getcwd()))

    # Service
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper())
    cors_origins: str = field(default_factory=lambda: os.environ.get("CORS_ORIGINS", "*"))

    # Internal state
    _update_count: int = field(default=0, repr=False, compare=False)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    _VALIDATION_RANGES = {
        "temperature": (0.0, 1.0),
        "max_output_tokens": (1, 64000),
        "llm_timeout": (1.0, 3600.0),
        "command_timeout": (1.0, 3600.0),
    }

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., temperature=0.2)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_"):
                    ignored.append(key)
                    continue

                if not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key == "llm_endpoint" and isinstance(value, str):
                    cleaned = value.strip()
                    if not cleaned.startswith(("http://", "https://")):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned

                # Validate numeric ranges
                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not isinstance(value, (int, float)) or not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                if key == "llm_api_key":
                    logger.info("Config updated: llm_api_key")
                else:
                    logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def get_llm_params(self) -> Dict[str, Any]:
        """Get generation parameters for model requests."""
        return {
            "model": self.model_chat,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }

    def get_llm_headers(self) -> Dict[str, str]:
        """Get provider request headers."""
        return {
            "x-api-key": self.llm_api_key,
            "anthropic-version": self.llm_api_version,
            "content-type": "application/json",
        }

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields, masks the API key)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if not field_info.name.startswith("_"):
                result[field_info.name] = getattr(self, field_info.name)
        result["llm_api_key"] = _mask_key(self.llm_api_key)
        return result


def _mask_key(key: str) -> str:
    if not key:
        return ""
    return key[:4] + "..."


def parse_cors_origins(value: str) -> Tuple[str, ...]:
    """Split a comma separated origin list."""
    return tuple(o.strip() for o in value.split(",") if o.strip()) or ("*",)


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
