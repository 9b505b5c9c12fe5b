"""
commonweal.config — YAML Configuration Loader
==============================================

Secrets and connection strings (``DATABASE_URL``, ``JWT_SECRET``) come from
the environment / ``.env``.  Everything else that an operator may want to
tune lives in ``config.yaml``; every key is optional.

Usage::

    from commonweal.config import load_config

    cfg = load_config()              # $COMMONWEAL_CONFIG or ./config.yaml
    print(cfg.token_ttl_hours)       # 24
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CommonwealConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    community_name: str = "Commonweal"

    # Access tokens
    token_ttl_hours: int = 24
    reset_token_ttl_minutes: int = 60

    # Listing endpoints
    default_page_size: int = 10
    max_page_size: int = 100

    # Logging
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> CommonwealConfig:
    """Read *path* and return a :class:`CommonwealConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$COMMONWEAL_CONFIG`` and then ``config.yaml`` in the working
        directory.  A missing file yields the defaults.

    Raises
    ------
    ValueError
        If a value has the wrong type or is out of range.
    """
    config_path = Path(path or os.getenv("COMMONWEAL_CONFIG") or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        logger.warning(
            "Configuration file %s not found; using defaults", config_path.resolve()
        )
        return CommonwealConfig()

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = CommonwealConfig()
    try:
        cfg = CommonwealConfig(
            community_name=str(raw.get("community_name", defaults.community_name)),
            token_ttl_hours=int(raw.get("token_ttl_hours", defaults.token_ttl_hours)),
            reset_token_ttl_minutes=int(
                raw.get("reset_token_ttl_minutes", defaults.reset_token_ttl_minutes)
            ),
            default_page_size=int(raw.get("default_page_size", defaults.default_page_size)),
            max_page_size=int(raw.get("max_page_size", defaults.max_page_size)),
            log_level=str(raw.get("log_level", defaults.log_level)).upper(),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value in {config_path}: {exc}") from exc

    if cfg.token_ttl_hours <= 0 or cfg.reset_token_ttl_minutes <= 0:
        raise ValueError(f"{config_path}: token lifetimes must be positive")
    if not 1 <= cfg.default_page_size <= cfg.max_page_size:
        raise ValueError(
            f"{config_path}: default_page_size must be between 1 and max_page_size"
        )
    return cfg


LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by the API and the maintenance scripts."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
