"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "linksentry",
    "environment": "dev",
    "http": {
        "timeout_seconds": 10.0,
        "max_redirects": 5,
        "user_agent": None,  # Browser UA from schema.py
    },
    "link_check": {
        "max_urls": 200,
        "max_concurrent": 10,
        "domain_delay_seconds": 0.1,
        "max_execution_seconds": 60.0,
        "max_retries": 2,
        "backoff_seconds": [0.1, 0.2],
    },
    "auth": {
        "required": True,
        "admin_api_url": None,
        "timeout_seconds": 5.0,
    },
    "cors": {
        "allow_localhost": True,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
