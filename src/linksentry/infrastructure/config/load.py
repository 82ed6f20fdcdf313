from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from linksentry.domain.exceptions import ConfigurationError

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides


_SECTION_KEYS: set[str] = {"http", "link_check", "auth", "cors", "logging"}

# Flat key -> (section, key inside section)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_max_redirects": ("http", "max_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "max_urls": ("link_check", "max_urls"),
    "max_concurrent": ("link_check", "max_concurrent"),
    "domain_delay_seconds": ("link_check", "domain_delay_seconds"),
    "max_execution_seconds": ("link_check", "max_execution_seconds"),
    "max_retries": ("link_check", "max_retries"),
    "auth_required": ("auth", "required"),
    "admin_api_url": ("auth", "admin_api_url"),
    "auth_timeout_seconds": ("auth", "timeout_seconds"),
    "allow_localhost": ("cors", "allow_localhost"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge `override` into `base` and return `base`.

    Rules:
    - dict + dict => deep merge
    - otherwise => override wins
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, Mapping)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a layer (defaults/YAML/ENV/CLI) into the canonical *sectioned* shape.

    Canonical top-level keys:
    - app_name, environment
    - http.timeout_seconds, http.max_redirects, http.user_agent
    - link_check.* (limits, retry policy, host tables)
    - auth.required, auth.admin_api_url, auth.timeout_seconds
    - cors.allowed_origin_prefixes, cors.allow_localhost
    - logging.level, logging.format
    """
    out: dict[str, Any] = {}

    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = dict(data[section])

    if "app_name" in data:
        out["app_name"] = data["app_name"]
    if "environment" in data:
        out["environment"] = data["environment"]

    for flat_key, (section, section_key) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})
            out[section][section_key] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    raw = config_path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigurationError(
            f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def _to_model_input(sectioned: dict[str, Any]) -> dict[str, Any]:
    """Drop unset (None) leaves so model defaults/derivations apply."""
    out: dict[str, Any] = {}
    for key, value in sectioned.items():
        if isinstance(value, dict):
            out[key] = {k: v for k, v in value.items() if v is not None}
        elif value is not None:
            out[key] = value
    return out


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration with strict precedence:
    defaults < YAML file < env vars < cli overrides

    This function MUST NOT create files or directories (no filesystem side-effects).
    """
    cli_overrides = cli_overrides or {}

    # Load .env first so it participates as "env vars" layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    base = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        yaml_layer = _normalize_layer(_read_yaml_config(config_path))
        _deep_merge(base, yaml_layer)

    try:
        env = EnvOverrides()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid LINKSENTRY_* environment: {e}") from e
    env_layer = _normalize_layer(env.to_update_dict())
    _deep_merge(base, env_layer)

    cli_layer = _normalize_layer(cli_overrides)
    _deep_merge(base, cli_layer)

    # Validate final merged config (single source of truth).
    try:
        return AppConfig.model_validate(_to_model_input(base))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
