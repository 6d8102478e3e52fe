"""
repboard.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for **infrastructure-only** settings (which workbook
to read, tab display names, cache lifetime, API port).  Secrets such as the
Google API key stay in the environment (``.env``).

Usage::

    from repboard.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.spreadsheet_id)
    print(cfg.display_name(Category.PUSH))   # "Push-ups"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from repboard.constants import (
    CACHE_TTL_SECONDS,
    DEFAULT_DISPLAY_NAMES,
    Category,
    parse_category,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RepboardConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Workbook
    spreadsheet_id: str

    # API
    api_port: int = 8000

    # Cache
    cache_ttl_hours: float = CACHE_TTL_SECONDS / 3600

    # Category → display label; order is the order categories are fetched in
    categories: dict[Category, str] = field(
        default_factory=lambda: dict(DEFAULT_DISPLAY_NAMES)
    )

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600

    @property
    def category_order(self) -> tuple[Category, ...]:
        return tuple(self.categories)

    def display_name(self, category: Category) -> str:
        return self.categories.get(category, category.value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> RepboardConfig:
    """Read *path* and return a :class:`RepboardConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If a configured category is not one of the known tabs.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    categories = dict(DEFAULT_DISPLAY_NAMES)
    if raw.get("categories"):
        categories = {
            parse_category(name): str(label or name)
            for name, label in raw["categories"].items()
        }

    return RepboardConfig(
        spreadsheet_id=str(raw["spreadsheet_id"]),
        api_port=int(raw.get("api_port", 8000)),
        cache_ttl_hours=float(raw.get("cache_ttl_hours", CACHE_TTL_SECONDS / 3600)),
        categories=categories,
    )
