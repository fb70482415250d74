"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "aggregarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 30.0,
        "follow_redirects": True,
        "user_agent": "Aggregarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "indexers": {
        "config_path": "./config/indexers.yaml",
        "redirect_to": "/config",
    },
    "search": {
        "max_concurrent_indexers": 10,
    },
}
