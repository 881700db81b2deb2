"""
Authorization policy: set-intersection over configured role categories.

Fail closed: an action missing from the table is denied, and a category
with no roles authorizes nobody.
"""

import pytest

from interaction_kernel.domain.policy import (
    NOTES_WORKFLOW,
    TICKETS_WORKFLOW,
    WORKFLOW_ACTION_TO_CATEGORY,
    AuthorizationPolicy,
    RoleCategory,
)
from interaction_kernel.domain.tokens import NoteAction, TicketAction
from interaction_kernel.exceptions import UnknownActionError

INITIATE_ROLE = "201"
LEADER_ROLE = "205"


@pytest.fixture
def policy():
    return AuthorizationPolicy(
        category_roles={
            RoleCategory.INITIATE: frozenset({INITIATE_ROLE, LEADER_ROLE}),
            RoleCategory.LEADERSHIP: frozenset({LEADER_ROLE}),
        }
    )


class TestActionTable:
    def test_every_action_is_mapped(self):
        for action in NoteAction:
            assert (NOTES_WORKFLOW, action.value) in WORKFLOW_ACTION_TO_CATEGORY
        for action in TicketAction:
            assert (TICKETS_WORKFLOW, action.value) in WORKFLOW_ACTION_TO_CATEGORY

    @pytest.mark.parametrize(
        "workflow,action,category",
        [
            (NOTES_WORKFLOW, NoteAction.REQUEST, RoleCategory.INITIATE),
            (NOTES_WORKFLOW, NoteAction.APPROVE, RoleCategory.LEADERSHIP),
            (NOTES_WORKFLOW, NoteAction.REJECT, RoleCategory.LEADERSHIP),
            (TICKETS_WORKFLOW, TicketAction.OPEN_DEFAULT, RoleCategory.INITIATE),
            (TICKETS_WORKFLOW, TicketAction.OPEN_PRAISE, RoleCategory.INITIATE),
            (TICKETS_WORKFLOW, TicketAction.END, RoleCategory.LEADERSHIP),
        ],
    )
    def test_required_category(self, policy, workflow, action, category):
        assert policy.required_category(workflow, action) is category

    def test_unknown_pair_raises(self, policy):
        with pytest.raises(UnknownActionError) as exc_info:
            policy.required_category(NOTES_WORKFLOW, "Delete")
        assert exc_info.value.workflow == NOTES_WORKFLOW
        assert exc_info.value.action == "Delete"


class TestIsAuthorized:
    def test_initiate_may_request(self, policy):
        assert policy.is_authorized(NOTES_WORKFLOW, NoteAction.REQUEST, {INITIATE_ROLE})

    def test_initiate_may_not_approve(self, policy):
        assert not policy.is_authorized(NOTES_WORKFLOW, NoteAction.APPROVE, {INITIATE_ROLE})

    def test_leader_may_approve_and_close(self, policy):
        assert policy.is_authorized(NOTES_WORKFLOW, NoteAction.APPROVE, {LEADER_ROLE})
        assert policy.is_authorized(TICKETS_WORKFLOW, TicketAction.END, [LEADER_ROLE])

    def test_no_roles_denied(self, policy):
        assert not policy.is_authorized(TICKETS_WORKFLOW, TicketAction.OPEN_DEFAULT, set())

    def test_unrelated_roles_denied(self, policy):
        assert not policy.is_authorized(TICKETS_WORKFLOW, TicketAction.OPEN_DEFAULT, {"999"})

    def test_plain_string_action(self, policy):
        assert policy.is_authorized(TICKETS_WORKFLOW, "OpenPraise", {INITIATE_ROLE})

    def test_unknown_pair_fails_closed(self, policy, captured_logs):
        assert not policy.is_authorized("payroll", "Approve", {LEADER_ROLE})

        errors = [r for r in captured_logs() if r["message"] == "authorization_unknown_action"]
        assert len(errors) == 1
        assert errors[0]["level"] == "ERROR"
        assert errors[0]["exc_code"] == "UNKNOWN_ACTION"

    def test_empty_category_authorizes_nobody(self):
        policy = AuthorizationPolicy(category_roles={RoleCategory.INITIATE: frozenset({"1"})})
        assert not policy.is_authorized(NOTES_WORKFLOW, NoteAction.APPROVE, {"1"})
        assert policy.roles_for(RoleCategory.LEADERSHIP) == frozenset()
