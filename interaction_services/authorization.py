"""
interaction_services.authorization -- runtime authorization at the
workflow boundary.

Responsibility:
    Look up the actor's roles in the guild (``RoleSource``) and check them
    against the ``AuthorizationPolicy`` before a workflow runs a
    transition.

Architecture position:
    Services layer.  Called by ``WorkflowDispatcher`` after a token has been
    decoded and before the owning workflow handles it.

Invariants:
    - Nothing state-changing runs unless ``require`` returned normally.
    - Activations from a direct-message context never reach this gate;
      the dispatcher logs and drops them.
"""

from __future__ import annotations

from enum import Enum

from interaction_kernel.domain.policy import AuthorizationPolicy
from interaction_kernel.domain.ports import ActivationEvent, RoleSource
from interaction_kernel.exceptions import UnauthorizedError
from interaction_kernel.logging_config import get_logger

logger = get_logger("services.authorization")


class AuthorizationGate:
    def __init__(self, policy: AuthorizationPolicy, role_source: RoleSource) -> None:
        self._policy = policy
        self._role_source = role_source

    @property
    def policy(self) -> AuthorizationPolicy:
        return self._policy

    async def require(
        self,
        event: ActivationEvent,
        workflow: str,
        action: str | Enum,
    ) -> None:
        """Return normally if the actor may perform ``action``.

        Raises:
            UnauthorizedError: If the policy denies the action.
        """
        action_name = action.value if isinstance(action, Enum) else action
        if event.guild_id is None:
            raise UnauthorizedError(event.actor.id, workflow, action_name)

        role_set = await self._role_source.role_set_of(event.actor, event.guild_id)
        if not self._policy.is_authorized(workflow, action_name, role_set):
            logger.warning(
                "authorization_denied",
                extra={
                    "workflow": workflow,
                    "action": action_name,
                    "actor_tag": event.actor.tag,
                    "role_count": len(role_set),
                },
            )
            raise UnauthorizedError(event.actor.id, workflow, action_name)

        logger.debug(
            "authorization_granted",
            extra={"workflow": workflow, "action": action_name},
        )
