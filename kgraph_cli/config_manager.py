"""Configuration manager for kgraph-cli using TOML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import toml

logger = logging.getLogger(__name__)


DEFAULT_UI_CONFIG: Dict[str, Any] = {
    "type_filter": "ProjectsAndWork",
    "status_filter": "All",
    "padding": 2,
}

DEFAULT_SOURCES_CONFIG: Dict[str, Any] = {
    "default": ["mock"],
    "max_commits": 50,
    "max_files": 200,
}


def config_file() -> Path:
    """Location of ``config.toml`` under the current ``KGRAPH_HOME``."""
    from .config import BASE_DIR

    return BASE_DIR / "config.toml"


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file is missing or cannot be parsed.
    """
    path = config_file()
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    path = config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", path, exc)
        return False


# ------------------------------------------------------------------
# [ui] section
# ------------------------------------------------------------------

def load_ui_config() -> Dict[str, Any]:
    """Load navigator defaults from the ``[ui]`` section.

    Returns:
        Defaults merged with whatever keys the file provides.
    """
    merged = DEFAULT_UI_CONFIG.copy()
    merged.update(load_full_config().get("ui", {}))
    return merged


def save_ui_config(type_filter: str = "", status_filter: str = "") -> bool:
    """Persist the initial type/status filters, preserving other sections."""
    config = load_full_config()
    ui = config.setdefault("ui", {})
    if type_filter:
        ui["type_filter"] = type_filter
    if status_filter:
        ui["status_filter"] = status_filter
    return _save_full_config(config)


# ------------------------------------------------------------------
# [sources] section
# ------------------------------------------------------------------

def load_sources_config() -> Dict[str, Any]:
    merged = DEFAULT_SOURCES_CONFIG.copy()
    merged.update(load_full_config().get("sources", {}))
    return merged


def save_default_sources(sources: List[str]) -> bool:
    """Save the list of source kinds ``kg browse`` uses when none are given.

    Args:
        sources: Source kinds such as ``["git", "files"]``.

    Returns:
        True if saved successfully.
    """
    config = load_full_config()
    config.setdefault("sources", {})["default"] = list(sources)
    return _save_full_config(config)
