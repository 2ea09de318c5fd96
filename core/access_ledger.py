"""
Access Ledger
=============

Persistence for the two sharing records:

- AccessRequest: pending -> approved | rejected (both terminal)
- SharedAccess: append-only grant written once per approval

The ledger enforces the state machine; authorization (who may decide a
request) lives in AccessControlService.
"""

import logging
from typing import List, Optional, Union
from sqlalchemy import and_, desc, exists
from sqlalchemy.orm import Session

from models.entities import (
    AccessRequest, SharedAccess, Category, Product,
    RequestStatus, ResourceType
)
from .errors import InvalidTransition, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

# Allowed status changes; anything not listed is rejected
TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED},
    RequestStatus.APPROVED: set(),
    RequestStatus.REJECTED: set(),
}


def coerce_resource_type(value: Union[str, ResourceType]) -> ResourceType:
    try:
        return ResourceType(value)
    except ValueError:
        raise ValidationFailed(
            f"Unsupported resource type '{value}'; expected one of: "
            f"{', '.join(t.value for t in ResourceType)}"
        ) from None


def coerce_status(value: Union[str, RequestStatus]) -> RequestStatus:
    try:
        return RequestStatus(value)
    except ValueError:
        raise ValidationFailed(f"Unknown request status '{value}'") from None


class AccessLedger:
    """Reads and writes access requests and grants."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def add_request(
        self,
        requester_id: str,
        owner_id: str,
        resource_type: ResourceType,
        resource_id: str,
        message: Optional[str] = None
    ) -> AccessRequest:
        if requester_id == owner_id:
            raise ValidationFailed("Cannot request access to your own resource")

        request = AccessRequest(
            requester_id=requester_id,
            owner_id=owner_id,
            resource_type=resource_type,
            resource_id=resource_id,
            status=RequestStatus.PENDING,
            message=message or f"Please grant me access to this {resource_type.value}"
        )
        self.session.add(request)
        self.session.flush()
        return request

    def get_request(self, request_id: str) -> AccessRequest:
        request = self.session.get(AccessRequest, request_id)
        if request is None:
            raise NotFound("access request", request_id)
        return request

    def requests_for_owner(self, owner_id: str) -> List[AccessRequest]:
        """All requests addressed to owner_id, newest first."""
        return self.session.query(AccessRequest).filter(
            AccessRequest.owner_id == owner_id
        ).order_by(desc(AccessRequest.created_at)).all()

    def requests_by_requester(self, requester_id: str) -> List[AccessRequest]:
        return self.session.query(AccessRequest).filter(
            AccessRequest.requester_id == requester_id
        ).order_by(desc(AccessRequest.created_at)).all()

    def has_pending(self, requester_id: str, resource_type: ResourceType, resource_id: str) -> bool:
        return self.session.query(AccessRequest.id).filter(
            AccessRequest.requester_id == requester_id,
            AccessRequest.resource_type == resource_type,
            AccessRequest.resource_id == resource_id,
            AccessRequest.status == RequestStatus.PENDING
        ).first() is not None

    def transition(self, request: AccessRequest, status: RequestStatus) -> AccessRequest:
        """Move a request to status, refusing anything but pending -> terminal."""
        if status not in TRANSITIONS[request.status]:
            raise InvalidTransition(
                f"Access request '{request.id}' is already {request.status.value}; "
                f"cannot change it to {status.value}"
            )
        request.status = status
        self.session.flush()
        return request

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def add_grant(self, request: AccessRequest) -> SharedAccess:
        """Write the grant for an approved request. Never deduplicated."""
        grant = SharedAccess(
            user_id=request.requester_id,
            owner_id=request.owner_id,
            resource_type=request.resource_type,
            resource_id=request.resource_id
        )
        self.session.add(grant)
        self.session.flush()
        return grant

    def has_grant(self, user_id: str, resource_type: ResourceType, resource_id: str) -> bool:
        return self.session.query(SharedAccess.id).filter(
            SharedAccess.user_id == user_id,
            SharedAccess.resource_type == resource_type,
            SharedAccess.resource_id == resource_id
        ).first() is not None

    def grants_for_user(self, user_id: str) -> List[SharedAccess]:
        return self.session.query(SharedAccess).filter(
            SharedAccess.user_id == user_id
        ).order_by(desc(SharedAccess.granted_at)).all()

    def approved_without_grant(self, owner_id: Optional[str] = None) -> List[AccessRequest]:
        """Approved requests whose grant write never landed."""
        grant_exists = exists().where(
            and_(
                SharedAccess.user_id == AccessRequest.requester_id,
                SharedAccess.resource_type == AccessRequest.resource_type,
                SharedAccess.resource_id == AccessRequest.resource_id
            )
        )
        query = self.session.query(AccessRequest).filter(
            AccessRequest.status == RequestStatus.APPROVED,
            ~grant_exists
        )
        if owner_id is not None:
            query = query.filter(AccessRequest.owner_id == owner_id)
        return query.order_by(AccessRequest.created_at).all()

    # ------------------------------------------------------------------
    # Orphans
    # ------------------------------------------------------------------

    def orphaned_requests(self) -> List[AccessRequest]:
        return [r for r in self.session.query(AccessRequest).all() if not self._resource_exists(r)]

    def orphaned_grants(self) -> List[SharedAccess]:
        return [g for g in self.session.query(SharedAccess).all() if not self._resource_exists(g)]

    def _resource_exists(self, record) -> bool:
        model = Category if record.resource_type == ResourceType.CATEGORY else Product
        return self.session.get(model, record.resource_id) is not None
