"""
questline.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for **service-level** settings (service identity,
pagination limits, leaderboard context size).  Operational switches that
should change without a redeploy (processing kill switch, availability
enforcement, rank refresh on completion) live in the ``settings`` table.

Usage::

    from questline.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.service_name)      # "Questline"
    print(cfg.max_page_size)     # 100
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"


# ---------------------------------------------------------------------------
# Typed settings object — service identity and API limits only.
# Rollup switches live in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class QuestlineConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    service_name: str

    # Pagination
    default_page_size: int
    max_page_size: int

    # Leaderboard
    leaderboard_context_size: int  # Rows shown above/below a player

    # Optional
    api_port: int = 8000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> QuestlineConfig:
    """Read *path* and return a :class:`QuestlineConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Falls back to the
        ``QUESTLINE_CONFIG`` environment variable, then ``config.yaml`` in
        the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If the page-size limits are inconsistent.
    """
    if path is None:
        path = os.getenv("QUESTLINE_CONFIG", DEFAULT_CONFIG_PATH)
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    cfg = QuestlineConfig(
        service_name=raw["service_name"],
        default_page_size=int(raw["default_page_size"]),
        max_page_size=int(raw["max_page_size"]),
        leaderboard_context_size=int(raw["leaderboard_context_size"]),
        api_port=int(raw.get("api_port") or 8000),
    )
    if cfg.default_page_size < 1 or cfg.default_page_size > cfg.max_page_size:
        raise ValueError(
            f"default_page_size ({cfg.default_page_size}) must be between 1 "
            f"and max_page_size ({cfg.max_page_size})"
        )
    return cfg
