"""
Error taxonomy for ownership and sharing decisions.

Every failure the core raises derives from AccessControlError so callers
(the CLI, tests) can catch one type and still tell the cases apart.
"""


class AccessControlError(Exception):
    """Base class for all access control failures."""


class Unauthenticated(AccessControlError):
    """No resolvable caller id was supplied."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class NotFound(AccessControlError):
    """A referenced resource or request does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} '{identifier}' not found")


class Forbidden(AccessControlError):
    """The caller does not own the resource or request."""


class ValidationFailed(AccessControlError):
    """A field value or argument is malformed."""


class InvalidTransition(ValidationFailed):
    """An access request is no longer pending and cannot be decided again."""


class GrantWriteFailed(AccessControlError):
    """
    The request was marked approved but the SharedAccess row could not be written.

    The ledger is left approved-without-grant; repair_missing_grants() fixes it.
    """

    def __init__(self, request_id: str, cause: Exception):
        self.request_id = request_id
        self.cause = cause
        super().__init__(
            f"Access request '{request_id}' was approved but the grant could not be recorded: {cause}"
        )
