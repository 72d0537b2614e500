"""Configuration management for the expense dashboard.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in expense_dashboard/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directory for exported expense files
DATA_DIR = Path(os.getenv("EXPENSE_DASHBOARD_DATA_DIR", _PROJECT_ROOT / "data"))

# Every date is bucketed in this zone
TIMEZONE = os.getenv("EXPENSE_DASHBOARD_TZ", "UTC")

# Category removed by the "exclude business expenses" toggle
BUSINESS_CATEGORY = os.getenv("EXPENSE_DASHBOARD_BUSINESS_CATEGORY", "Business")

# Paginated expense source
PAGE_SIZE = int(os.getenv("EXPENSE_DASHBOARD_PAGE_SIZE", "1000"))

# AI tip provider
AI_API_URL = os.getenv("EXPENSE_DASHBOARD_AI_URL", "https://api.anthropic.com/v1/messages")
AI_API_VERSION = "2023-06-01"
AI_MODEL = os.getenv("EXPENSE_DASHBOARD_AI_MODEL", "claude-sonnet-4-20250514")
AI_TIMEOUT = float(os.getenv("EXPENSE_DASHBOARD_AI_TIMEOUT", "20"))
AI_MAX_TOKENS = int(os.getenv("EXPENSE_DASHBOARD_AI_MAX_TOKENS", "600"))

LOG_LEVEL = os.getenv("EXPENSE_DASHBOARD_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s] - %(message)s"


def get_api_key() -> Optional[str]:
    """Return the AI provider credential, read at call time."""
    key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    return key or None


def ai_enabled() -> bool:
    return get_api_key() is not None


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a single stream handler to the package logger."""
    log = logging.getLogger("expense_dashboard")
    log.setLevel((level or LOG_LEVEL).upper())
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    return log

