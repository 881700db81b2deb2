"""
Typed Exception Hierarchy for the Interaction Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure in a workflow ends up in front of a person clicking a button.
The dispatcher decides, per failure, what that person sees and what
operators see in the logs, and it decides by exception class alone:

  - the class selects the reply shown to the user
  - ``code`` is the stable, log-safe identifier (staff-facing for TKnnn)
  - the ids involved travel as attributes, never inside the message

Example:
    try:
        await workflow.end(event, token)
    except TicketNotFoundError as e:
        await event.responder.reply("Ticket não encontrado.")
        log.warning("ticket_not_found", extra={"ticket_id": e.ticket_id})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InteractionKernelError:

    InteractionKernelError (base)
    |
    +-- TokenError
    |   +-- MalformedTokenError
    |   +-- TokenTooLongError
    |   +-- MissingRequestEmbedError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |   +-- UnknownActionError
    |
    +-- NotFoundError
    |   +-- TicketNotFoundError
    |   +-- TargetNotFoundError
    |   +-- TicketChannelMissingError
    |
    +-- CollectionAbortedError
    +-- ChannelKindError
    |
    +-- NoteError
    |   +-- InvalidNoteTransitionError
    |
    +-- TicketError
    |   +-- InvalidTicketTransitionError
    |
    +-- ImmutabilityViolationError
    +-- ExternalServiceError
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Token           | MALFORMED_TOKEN             | Namespace matched, payload did not decode
                | TOKEN_TOO_LONG              | Encoded token exceeds the control-id limit
                | MISSING_REQUEST_EMBED       | Decision clicked on a message with no embed
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED                | Actor lacks the required role category
                | UNKNOWN_ACTION              | (workflow, action) absent from policy table
----------------|-----------------------------|-----------------------------------------
Lookup          | TICKET_NOT_FOUND            | No ticket with the given id
                | TARGET_NOT_FOUND            | Identity resolver could not find target
                | TK207                       | Ticket channel no longer exists
----------------|-----------------------------|-----------------------------------------
Input           | COLLECTION_ABORTED          | Dialog dismissed or timed out (silent)
----------------|-----------------------------|-----------------------------------------
Channel         | TK216                       | Channel is not text-capable
----------------|-----------------------------|-----------------------------------------
Note            | INVALID_NOTE_TRANSITION     | Decision on an already decided request
----------------|-----------------------------|-----------------------------------------
Ticket          | INVALID_TICKET_TRANSITION   | Attempt to reopen a closed ticket
----------------|-----------------------------|-----------------------------------------
Persistence     | IMMUTABILITY_VIOLATION      | Write-once ticket field modified
----------------|-----------------------------|-----------------------------------------
Collaborator    | EXTERNAL_SERVICE_ERROR      | Gateway / store / resolver call failed
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Invalid or incomplete configuration

The channel codes keep the short ``TKnnn`` form shown to staff in the
chat, so a screenshot of the reply is enough to find the failing branch.
"""


class InteractionKernelError(Exception):
    """
    Base exception for all interaction kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INTERACTION_KERNEL_ERROR"


# Token-related exceptions


class TokenError(InteractionKernelError):
    """Base exception for action-token errors."""

    code: str = "TOKEN_ERROR"


class MalformedTokenError(TokenError):
    """Token belongs to a known namespace but its payload is invalid."""

    code: str = "MALFORMED_TOKEN"

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Malformed action token {token!r}: {reason}")


class TokenTooLongError(TokenError):
    """Encoded token does not fit on a UI control."""

    code: str = "TOKEN_TOO_LONG"

    def __init__(self, token: str, limit: int):
        self.token = token
        self.length = len(token)
        self.limit = limit
        super().__init__(
            f"Action token is {self.length} characters, limit is {limit}"
        )


class MissingRequestEmbedError(TokenError):
    """A decision control was activated on a message that carries no request."""

    code: str = "MISSING_REQUEST_EMBED"

    def __init__(self, message_id: str | None):
        self.message_id = message_id
        super().__init__(f"Message {message_id} carries no note request embed")


# Authorization-related exceptions


class AuthorizationError(InteractionKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Actor lacks the role category required for the action."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, workflow: str, action: str):
        self.actor_id = actor_id
        self.workflow = workflow
        self.action = action
        super().__init__(
            f"Actor {actor_id} is not authorized for {workflow}/{action}"
        )


class UnknownActionError(AuthorizationError):
    """
    Action is not present in the policy table.

    Raised so a missing table entry shows up as a bug instead of an
    implicit allow.
    """

    code: str = "UNKNOWN_ACTION"

    def __init__(self, workflow: str, action: str):
        self.workflow = workflow
        self.action = action
        super().__init__(f"No authorization rule for {workflow}/{action}")


# Lookup-related exceptions


class NotFoundError(InteractionKernelError):
    """Base exception for lookup misses."""

    code: str = "NOT_FOUND"


class TicketNotFoundError(NotFoundError):
    """Ticket with given ID was not found."""

    code: str = "TICKET_NOT_FOUND"

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket not found: {ticket_id}")


class TargetNotFoundError(NotFoundError):
    """The identity resolver could not match the supplied target."""

    code: str = "TARGET_NOT_FOUND"

    def __init__(self, raw_input: str):
        self.raw_input = raw_input
        super().__init__(f"Could not resolve target: {raw_input!r}")


class TicketChannelMissingError(NotFoundError):
    """The channel recorded on a ticket no longer exists."""

    code: str = "TK207"

    def __init__(self, ticket_id: str, channel_ref: str):
        self.ticket_id = ticket_id
        self.channel_ref = channel_ref
        super().__init__(
            f"Channel {channel_ref} for ticket {ticket_id} does not exist"
        )


# Input collection


class CollectionAbortedError(InteractionKernelError):
    """The actor dismissed the input dialog or it timed out."""

    code: str = "COLLECTION_ABORTED"

    def __init__(self, prompt_title: str, reason: str = "dismissed"):
        self.prompt_title = prompt_title
        self.reason = reason
        super().__init__(f"Input collection '{prompt_title}' aborted: {reason}")


# Channel errors


class ChannelKindError(InteractionKernelError):
    """
    Expected a text-capable channel, got something else.

    Distinct from transient failures: this almost always means a channel
    reference in configuration points at the wrong kind of channel.
    """

    code: str = "TK216"

    def __init__(self, channel_ref: str, expected: str, actual: str):
        self.channel_ref = channel_ref
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Channel {channel_ref} is {actual}, expected {expected}"
        )


# Note requests


class NoteError(InteractionKernelError):
    """Base exception for note request errors."""

    code: str = "NOTE_ERROR"


class InvalidNoteTransitionError(NoteError):
    """Decision on a request message that is no longer pending."""

    code: str = "INVALID_NOTE_TRANSITION"

    def __init__(self, message_ref: str, from_state: str, to_state: str):
        self.message_ref = message_ref
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Note request {message_ref} cannot move from {from_state} to {to_state}"
        )


# Ticket lifecycle


class TicketError(InteractionKernelError):
    """Base exception for ticket lifecycle errors."""

    code: str = "TICKET_ERROR"


class InvalidTicketTransitionError(TicketError):
    """Ticket status change not permitted by the lifecycle."""

    code: str = "INVALID_TICKET_TRANSITION"

    def __init__(self, ticket_id: str, from_status: str, to_status: str):
        self.ticket_id = ticket_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Ticket {ticket_id} cannot move from {from_status} to {to_status}"
        )


# Persistence


class ImmutabilityViolationError(InteractionKernelError):
    """Attempted to modify or delete a write-once record or field."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Collaborators


class ExternalServiceError(InteractionKernelError):
    """A collaborator call (gateway, store, resolver) failed."""

    code: str = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, operation: str, detail: str = ""):
        self.service = service
        self.operation = operation
        self.detail = detail
        message = f"{service}.{operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Configuration


class ConfigurationError(InteractionKernelError):
    """Configuration is missing, malformed, or inconsistent."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
