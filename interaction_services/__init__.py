"""
Interaction services -- the two workflows, the authorization gate and the
dispatcher that routes UI control activations between them.
"""

from interaction_services.authorization import AuthorizationGate
from interaction_services.bootstrap import WorkflowRuntime, build_runtime
from interaction_services.context import ActivationContext
from interaction_services.dispatcher import DispatchOutcome, WorkflowDispatcher
from interaction_services.notes_workflow import NotesWorkflow
from interaction_services.ticket_workflow import TicketWorkflow

__all__ = [
    "ActivationContext",
    "AuthorizationGate",
    "DispatchOutcome",
    "NotesWorkflow",
    "TicketWorkflow",
    "WorkflowDispatcher",
    "WorkflowRuntime",
    "build_runtime",
]
