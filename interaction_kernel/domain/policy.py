"""
Authorization policy (``interaction_kernel.domain.policy``).

Responsibility
--------------
Decides whether an actor holding a given set of role ids may perform a
workflow action.  The decision is a pure set-intersection test against a
static ``(workflow, action) -> role category`` table; the role ids that
make up each category come from configuration.

Architecture position
---------------------
**Kernel domain layer**.  No I/O besides logging.  Role membership is
looked up by the caller (``interaction_services.authorization``) and
passed in as a plain set.

Invariants enforced
-------------------
* Fail closed: a ``(workflow, action)`` pair missing from the table is
  denied.  ``required_category`` raises ``UnknownActionError`` so the gap
  is logged as a bug, and ``is_authorized`` returns ``False``.
* A category with no configured roles authorizes nobody.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from interaction_kernel.domain.tokens import NoteAction, TicketAction
from interaction_kernel.exceptions import UnknownActionError
from interaction_kernel.logging_config import get_logger

logger = get_logger("domain.policy")

NOTES_WORKFLOW = "notes"
TICKETS_WORKFLOW = "tickets"


class RoleCategory(str, Enum):
    """Named groups of roles gating lower- vs higher-privilege actions."""

    INITIATE = "initiate"
    LEADERSHIP = "leadership"


# (workflow, action) -> role category required to perform it
WORKFLOW_ACTION_TO_CATEGORY: dict[tuple[str, str], RoleCategory] = {
    # Notes
    (NOTES_WORKFLOW, NoteAction.REQUEST.value): RoleCategory.INITIATE,
    (NOTES_WORKFLOW, NoteAction.APPROVE.value): RoleCategory.LEADERSHIP,
    (NOTES_WORKFLOW, NoteAction.REJECT.value): RoleCategory.LEADERSHIP,
    # Tickets
    (TICKETS_WORKFLOW, TicketAction.OPEN_DEFAULT.value): RoleCategory.INITIATE,
    (TICKETS_WORKFLOW, TicketAction.OPEN_PRAISE.value): RoleCategory.INITIATE,
    (TICKETS_WORKFLOW, TicketAction.END.value): RoleCategory.LEADERSHIP,
}


def _action_key(action: str | Enum) -> str:
    return action.value if isinstance(action, Enum) else action


@dataclass(frozen=True)
class AuthorizationPolicy:
    """Data-driven action -> category -> role-id-list policy.

    Contract:
        ``category_roles`` maps each category to the role ids that belong
        to it.  ``table`` defaults to ``WORKFLOW_ACTION_TO_CATEGORY``.
    """

    category_roles: Mapping[RoleCategory, frozenset[str]]
    table: Mapping[tuple[str, str], RoleCategory] = field(
        default_factory=lambda: dict(WORKFLOW_ACTION_TO_CATEGORY)
    )

    def required_category(self, workflow: str, action: str | Enum) -> RoleCategory:
        """Return the category an action requires.

        Raises:
            UnknownActionError: If the pair is not in the table.
        """
        key = (workflow, _action_key(action))
        try:
            return self.table[key]
        except KeyError:
            raise UnknownActionError(*key) from None

    def roles_for(self, category: RoleCategory) -> frozenset[str]:
        return frozenset(self.category_roles.get(category, frozenset()))

    def is_authorized(
        self,
        workflow: str,
        action: str | Enum,
        role_set: Iterable[str],
    ) -> bool:
        """True iff ``role_set`` intersects the required category's roles."""
        try:
            category = self.required_category(workflow, action)
        except UnknownActionError:
            logger.error(
                "authorization_unknown_action",
                extra={"workflow": workflow, "action": _action_key(action)},
                exc_info=True,
            )
            return False

        return not self.roles_for(category).isdisjoint(role_set)
