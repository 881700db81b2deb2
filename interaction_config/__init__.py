"""
interaction_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration layer.  Sits above ``interaction_kernel`` and below
    ``interaction_services``.  The kernel never imports from here.

Environment:
    INTERACTION_CONFIG -- path to the YAML file (defaults to sets/default.yaml)
    DATABASE_URL       -- overrides ``database.url``

Audit relevance:
    Every successful call emits a ``CONFIG_TRACE`` log entry with the
    config id, version and checksum, tying every handled activation to the
    exact configuration that governed it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from interaction_config.loader import load_config_file
from interaction_config.schema import (
    CategoryDef,
    ChannelRefs,
    SectorRole,
    WorkflowConfig,
)

_logger = logging.getLogger("interaction_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "INTERACTION_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(path: Path | None = None) -> WorkflowConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Explicit YAML path.  Falls back to ``$INTERACTION_CONFIG``,
            then to the bundled default set.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If validation fails.
    """
    config_path = path or Path(os.environ.get(CONFIG_PATH_ENV, _DEFAULT_CONFIG_PATH))
    config = load_config_file(config_path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database_url=database_url)

    _logger.info(
        "CONFIG_TRACE",
        extra={
            "trace_type": "CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "category_count": len(config.categories),
            "sector_role_count": len(config.sector_roles),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "CategoryDef",
    "ChannelRefs",
    "SectorRole",
    "WorkflowConfig",
]
