# GPSR Compliance Records - Core Modules
# Ownership guards, redaction and the access request ledger.
#
# Services are imported from their modules (core.access_control etc.);
# only the error types are re-exported here because models import them.

from .errors import (
    AccessControlError,
    Unauthenticated,
    NotFound,
    Forbidden,
    ValidationFailed,
    InvalidTransition,
    GrantWriteFailed
)

__all__ = [
    'AccessControlError',
    'Unauthenticated',
    'NotFound',
    'Forbidden',
    'ValidationFailed',
    'InvalidTransition',
    'GrantWriteFailed'
]
