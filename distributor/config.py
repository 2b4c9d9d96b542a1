"""Settings for a distribution run, read from ``config/settings.yml``.

Environment variables take precedence over the file:

* ``DISTRIBUTION_STRATEGY`` – default strategy name.
* ``MAX_RECORDS`` – upper bound on records accepted per distribution.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 10_000


@dataclass
class Settings:
    default_strategy: str = "equal"
    max_records: int = DEFAULT_MAX_RECORDS
    agents_file: str = "agents.yml"


def _env_int(name: str, fallback: int) -> int:
    env_val = os.getenv(name)
    if not env_val:
        return fallback
    try:
        return int(env_val.strip())
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, env_val)
        return fallback


def load_settings(base: Path) -> Settings:
    """Read *base*/config/settings.yml (optional) and apply env overrides."""

    cfg_path = Path(base) / "config" / "settings.yml"
    raw = {}
    if cfg_path.exists():
        raw = yaml.safe_load(cfg_path.read_text()) or {}

    settings = Settings(
        default_strategy=str(raw.get("default_strategy", Settings.default_strategy)),
        max_records=int(raw.get("max_records", DEFAULT_MAX_RECORDS)),
        agents_file=str(raw.get("agents_file", Settings.agents_file)),
    )
    settings.default_strategy = os.getenv("DISTRIBUTION_STRATEGY", settings.default_strategy)
    settings.max_records = _env_int("MAX_RECORDS", settings.max_records)
    return settings
