"""
WorkflowConfig schema.

Frozen dataclasses describing the recognized configuration surface: named
channel references, the ordered sector role hierarchy, role categories used
by the authorization policy, mention roles and the database URL.  YAML is
parsed into these types by ``interaction_config.loader``; they are injected
at startup and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from interaction_kernel.domain.policy import RoleCategory

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SectorRole:
    """One rung of the sector hierarchy (lowest rank first in config)."""

    key: str
    id: str
    name: str


@dataclass(frozen=True)
class CategoryDef:
    """A role category compiled down to concrete role ids."""

    name: str
    role_ids: tuple[str, ...]


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChannelRefs:
    approval_request: str
    notes_record: str
    tickets_archive: str
    tickets_category: str


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfig:
    config_id: str
    version: int
    guild_id: str
    channels: ChannelRefs
    sector_roles: tuple[SectorRole, ...]
    categories: tuple[CategoryDef, ...]
    notes_review_role_id: str
    tickets_staff_role_id: str
    database_url: str = "sqlite:///interaction.db"
    log_level: str = "INFO"
    profile_image_url_template: str | None = None
    checksum: str = field(default="", compare=False)

    def category(self, category: RoleCategory) -> CategoryDef | None:
        for c in self.categories:
            if c.name == category.value:
                return c
        return None

    def category_roles(self) -> dict[RoleCategory, frozenset[str]]:
        """Role ids per category, as consumed by ``AuthorizationPolicy``."""
        return {
            RoleCategory(c.name): frozenset(c.role_ids)
            for c in self.categories
            if c.name in {rc.value for rc in RoleCategory}
        }

    def highest_sector_role(self, role_ids: Iterable[str]) -> SectorRole | None:
        """Highest-ranked sector role among ``role_ids``, if any."""
        held = set(role_ids)
        for role in reversed(self.sector_roles):
            if role.id in held:
                return role
        return None

    def profile_image_url(self, figure: str | None) -> str | None:
        if not figure or not self.profile_image_url_template:
            return None
        return self.profile_image_url_template.format(figure=figure)
