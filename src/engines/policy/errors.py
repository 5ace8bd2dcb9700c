"""
Policy outcomes the request layer must be able to tell apart.

Domain refusals derive from PolicyError and carry a stable ``code``.
InfrastructureError is deliberately outside that hierarchy: it means a
collaborator (database, storage, cache) failed, not that a rule said no.
"""

import uuid
from typing import Optional, Union


class PolicyError(Exception):
    """Base class for domain refusals."""

    code = "policy_error"

    def __init__(
        self,
        message: str,
        *,
        resource_id: Optional[Union[uuid.UUID, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.resource_id = resource_id


class NotFoundError(PolicyError):
    """Entity absent, or not in the lifecycle state the operation needs."""

    code = "not_found"


class ForbiddenError(PolicyError):
    """Role, ownership or scope mismatch."""

    code = "forbidden"


class ExpiredWindowError(PolicyError):
    """Restore attempted after the recovery window closed."""

    code = "expired_window"


class ConflictError(PolicyError):
    """A domain guard refused the change (dependents, duplicates)."""

    code = "conflict"


class InfrastructureError(Exception):
    """A collaborator failed; surfaced to callers as an opaque failure."""

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
