"""
Configuration Loader (``interaction_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``WorkflowConfig``.  Build/test tooling: runtime callers go through
``interaction_config.get_active_config()``.

Invariants enforced
-------------------
* Every problem found while parsing is collected and raised together as a
  single ``ConfigurationError``; no silent defaults for required fields.
* Role categories resolve to concrete role ids at load time, either from an
  explicit ``roles`` list (sector keys or raw ids) or from ``at_least``,
  which takes every sector role ranked at or above the named one.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed data.

Failure modes
-------------
* Missing YAML file -> ``FileNotFoundError`` propagates.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Structural problems -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from interaction_config.schema import (
    CategoryDef,
    ChannelRefs,
    SectorRole,
    WorkflowConfig,
)
from interaction_kernel.domain.policy import RoleCategory
from interaction_kernel.exceptions import ConfigurationError

REQUIRED_CHANNELS = (
    "approval_request",
    "notes_record",
    "tickets_archive",
    "tickets_category",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _as_id(value: Any) -> str:
    # Snowflake ids written unquoted in YAML load as int.
    return str(value).strip()


def _parse_sector_roles(raw: Any, errors: list[str]) -> tuple[SectorRole, ...]:
    if not isinstance(raw, list) or not raw:
        errors.append("sector_roles must be a non-empty list (lowest rank first)")
        return ()

    roles: list[SectorRole] = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not {"key", "id"} <= set(item):
            errors.append(f"sector_roles[{i}] needs 'key' and 'id'")
            continue
        key = str(item["key"])
        if key in seen:
            errors.append(f"sector_roles[{i}]: duplicate key {key!r}")
            continue
        seen.add(key)
        roles.append(SectorRole(key=key, id=_as_id(item["id"]), name=str(item.get("name", key))))
    return tuple(roles)


def _resolve_role_ref(
    ref: Any,
    roles_by_key: dict[str, SectorRole],
) -> str:
    key = str(ref)
    role = roles_by_key.get(key)
    return role.id if role is not None else _as_id(ref)


def _parse_categories(
    raw: Any,
    sector_roles: tuple[SectorRole, ...],
    errors: list[str],
) -> tuple[CategoryDef, ...]:
    if not isinstance(raw, dict):
        errors.append("role_categories must be a mapping")
        return ()

    roles_by_key = {r.key: r for r in sector_roles}
    ranks = {r.key: i for i, r in enumerate(sector_roles)}
    categories: list[CategoryDef] = []

    for name, spec in raw.items():
        if not isinstance(spec, dict):
            errors.append(f"role_categories.{name} must be a mapping")
            continue
        role_ids: list[str] = []
        if "at_least" in spec:
            floor = str(spec["at_least"])
            if floor not in ranks:
                errors.append(
                    f"role_categories.{name}.at_least: unknown sector role {floor!r}"
                )
            else:
                role_ids.extend(r.id for r in sector_roles[ranks[floor]:])
        refs = spec.get("roles") or []
        if not isinstance(refs, list):
            errors.append(f"role_categories.{name}.roles must be a list")
            refs = []
        for ref in refs:
            role_id = _resolve_role_ref(ref, roles_by_key)
            if role_id not in role_ids:
                role_ids.append(role_id)
        if not role_ids:
            errors.append(f"role_categories.{name} resolves to no roles")
        categories.append(CategoryDef(name=str(name), role_ids=tuple(role_ids)))

    names = {c.name for c in categories}
    for required in RoleCategory:
        if required.value not in names:
            errors.append(f"role_categories.{required.value} is required")

    return tuple(categories)


def _section(data: dict[str, Any], name: str, errors: list[str]) -> dict[str, Any]:
    """Optional mapping section; anything else is recorded as an error."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        errors.append(f"{name} must be a mapping")
        return {}
    return value


def _parse_version(raw: Any, errors: list[str]) -> int:
    if isinstance(raw, bool):
        errors.append("version must be an integer")
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        errors.append(f"version must be an integer, got {raw!r}")
        return 0


def parse_config(data: dict[str, Any]) -> WorkflowConfig:
    """
    Parse a configuration dict into a ``WorkflowConfig``.

    Raises:
        ConfigurationError: listing every problem found.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(["configuration root must be a mapping"])

    errors: list[str] = []

    for key in ("config_id", "guild_id"):
        if not data.get(key):
            errors.append(f"{key} is required")
    version = _parse_version(data.get("version", 1), errors)

    channels_raw = _section(data, "channels", errors)
    for c in REQUIRED_CHANNELS:
        if not channels_raw.get(c):
            errors.append(f"channels.{c} is required")

    sector_roles = _parse_sector_roles(data.get("sector_roles"), errors)
    categories = _parse_categories(data.get("role_categories") or {}, sector_roles, errors)

    roles_by_key = {r.key: r for r in sector_roles}
    mentions = _section(data, "mentions", errors)
    for key in ("notes_review_role", "tickets_staff_role"):
        if not mentions.get(key):
            errors.append(f"mentions.{key} is required")

    database = _section(data, "database", errors)
    logging_cfg = _section(data, "logging", errors)

    if errors:
        raise ConfigurationError(errors)

    return WorkflowConfig(
        config_id=str(data["config_id"]),
        version=version,
        guild_id=_as_id(data["guild_id"]),
        channels=ChannelRefs(**{c: _as_id(channels_raw[c]) for c in REQUIRED_CHANNELS}),
        sector_roles=sector_roles,
        categories=categories,
        notes_review_role_id=_resolve_role_ref(mentions["notes_review_role"], roles_by_key),
        tickets_staff_role_id=_resolve_role_ref(mentions["tickets_staff_role"], roles_by_key),
        database_url=str(database.get("url", "sqlite:///interaction.db")),
        log_level=str(logging_cfg.get("level", "INFO")).upper(),
        profile_image_url_template=data.get("profile_image_url"),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> WorkflowConfig:
    return parse_config(load_yaml_file(path))
