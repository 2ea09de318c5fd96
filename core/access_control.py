"""
Access Control Service
======================

Single entry point for callers (CLI, web handlers, tests). Every
operation takes the caller's id explicitly; nothing reads an ambient
"current user".

Sharing workflow:
1. A non-owner calls request_access() -> pending AccessRequest
2. The owner sees it in list_incoming_requests()
3. The owner calls decide_request(): approved writes a SharedAccess grant,
   rejected only closes the request

Resource reads and writes are delegated to the per-kind stores, which
enforce ownership and redaction.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.entities import (
    AccessRequest, Category, Product, SharedAccess,
    AccessDecision, RequestStatus, ResourceType
)
from .access_ledger import AccessLedger, coerce_resource_type, coerce_status
from .audit import AuditLogger
from .category_tree import build_category_tree
from .errors import Forbidden, GrantWriteFailed, ValidationFailed
from .identity import IdentityProvider, require_caller
from .resource_store import CategoryStore, ProductStore, SupplierStore, ResourceStore
from .visibility import VisibilityResolver

logger = logging.getLogger(__name__)

UNKNOWN_RESOURCE = "Unknown"


class AccessControlService:
    """
    Orchestrates ownership checks, redaction and the request/approval ledger.

    Args:
        session: SQLAlchemy session; the caller owns the transaction
        honor_grants: Let approved grantees see full records
            (defaults to the GPSR_HONOR_GRANTS setting)
    """

    def __init__(self, session: Session, honor_grants: Optional[bool] = None):
        self.session = session
        self.identity = IdentityProvider(session)
        self.audit = AuditLogger(session)
        self.ledger = AccessLedger(session)
        self.resolver = VisibilityResolver(
            self.identity.display_name,
            session=session,
            honor_grants=settings.honor_grants if honor_grants is None else honor_grants
        )
        self.categories = CategoryStore(session, self.identity, self.resolver, self.audit)
        self.products = ProductStore(session, self.identity, self.resolver, self.audit)
        self.suppliers = SupplierStore(session, self.identity, self.resolver, self.audit)
        self._stores = {
            'category': self.categories,
            'product': self.products,
            'supplier': self.suppliers,
        }

    # ==================================================================
    # Sharing workflow
    # ==================================================================

    def request_access(
        self,
        caller_id: Optional[str],
        resource_type: Union[str, ResourceType],
        resource_id: str,
        owner_id: str,
        message: Optional[str] = None
    ) -> AccessRequest:
        """
        Ask owner_id for full access to a category or product.

        owner_id is taken as supplied; decide_request() checks that the
        decider is the owner recorded on the request.
        """
        caller_id = require_caller(caller_id)
        resource_type = coerce_resource_type(resource_type)

        request = self.ledger.add_request(caller_id, owner_id, resource_type, resource_id, message)
        self.audit.log_access_decision(
            user_id=caller_id,
            action="request:access",
            decision=AccessDecision.PERMIT,
            decision_reason="Access request recorded",
            resource_type=resource_type,
            resource_id=resource_id,
            request_details={'request_id': request.id, 'owner_id': owner_id}
        )
        logger.info("%s requested access to %s %s from %s", caller_id, resource_type.value, resource_id, owner_id)
        return request

    def list_incoming_requests(self, caller_id: Optional[str]) -> List[Dict[str, Any]]:
        """
        Requests addressed to the caller, newest first, with requester and
        resource names resolved. Deleted resources show as "Unknown".
        """
        caller_id = require_caller(caller_id)
        requests = self.ledger.requests_for_owner(caller_id)
        requester_names = self.identity.display_names(r.requester_id for r in requests)
        resource_names = self._resource_names(requests)

        return [
            {
                'id': r.id,
                'requester_id': r.requester_id,
                'requester_name': requester_names.get(r.requester_id),
                'resource_type': r.resource_type.value,
                'resource_id': r.resource_id,
                'resource_name': resource_names.get((r.resource_type, r.resource_id), UNKNOWN_RESOURCE),
                'status': r.status.value,
                'message': r.message,
                'created_at': r.created_at,
            }
            for r in requests
        ]

    def list_outgoing_requests(self, caller_id: Optional[str]) -> List[Dict[str, Any]]:
        """Requests the caller has made, newest first."""
        caller_id = require_caller(caller_id)
        requests = self.ledger.requests_by_requester(caller_id)
        owner_names = self.identity.display_names(r.owner_id for r in requests)
        resource_names = self._resource_names(requests)
        return [
            {
                'id': r.id,
                'owner_id': r.owner_id,
                'owner_name': owner_names.get(r.owner_id),
                'resource_type': r.resource_type.value,
                'resource_id': r.resource_id,
                'resource_name': resource_names.get((r.resource_type, r.resource_id), UNKNOWN_RESOURCE),
                'status': r.status.value,
                'created_at': r.created_at,
            }
            for r in requests
        ]

    def decide_request(
        self,
        caller_id: Optional[str],
        request_id: str,
        decision: Union[str, RequestStatus]
    ) -> AccessRequest:
        """
        Approve or reject a pending request.

        The status change is flushed first. On approval the grant is then
        written inside a savepoint; if that write fails the request stays
        approved without a grant and GrantWriteFailed is raised.

        Raises:
            NotFound: no such request
            Forbidden: caller is not the request's owner
            InvalidTransition: request is no longer pending
            GrantWriteFailed: approved, but the grant was not recorded
        """
        caller_id = require_caller(caller_id)
        decision = coerce_status(decision)
        if decision == RequestStatus.PENDING:
            raise ValidationFailed("Decision must be 'approved' or 'rejected'")

        request = self.ledger.get_request(request_id)
        if request.owner_id != caller_id:
            self.audit.log_access_decision(
                user_id=caller_id,
                action=f"decide:{decision.value}",
                decision=AccessDecision.DENY,
                decision_reason="Caller does not own the requested resource",
                resource_type=request.resource_type,
                resource_id=request.resource_id,
                request_details={'request_id': request.id}
            )
            logger.warning("Denied decision on request %s for %s: not the owner", request.id, caller_id)
            raise Forbidden("You can only decide access requests addressed to you")

        self.ledger.transition(request, decision)
        self.audit.log_access_decision(
            user_id=caller_id,
            action=f"decide:{decision.value}",
            decision=AccessDecision.PERMIT,
            decision_reason=f"Request {decision.value} by owner",
            resource_type=request.resource_type,
            resource_id=request.resource_id,
            request_details={'request_id': request.id, 'requester_id': request.requester_id}
        )

        if decision == RequestStatus.APPROVED:
            self._write_grant(request)

        logger.info("Request %s %s by %s", request.id, decision.value, caller_id)
        return request

    def has_requested_access(
        self,
        caller_id: Optional[str],
        resource_type: Union[str, ResourceType],
        resource_id: str
    ) -> bool:
        """True while the caller has a pending request for the resource."""
        if not caller_id:
            return False
        return self.ledger.has_pending(caller_id, coerce_resource_type(resource_type), resource_id)

    def has_shared_access(
        self,
        caller_id: Optional[str],
        resource_type: Union[str, ResourceType],
        resource_id: str
    ) -> bool:
        """True once any grant exists for the caller on the resource."""
        if not caller_id:
            return False
        return self.ledger.has_grant(caller_id, coerce_resource_type(resource_type), resource_id)

    def list_grants(self, caller_id: Optional[str]) -> List[SharedAccess]:
        """Grants held by the caller, newest first."""
        return self.ledger.grants_for_user(require_caller(caller_id))

    # ==================================================================
    # Resources
    # ==================================================================

    def store(self, resource_type: str) -> ResourceStore:
        kind = getattr(resource_type, 'value', resource_type)
        try:
            return self._stores[kind]
        except KeyError:
            raise ValidationFailed(
                f"Unknown resource type '{resource_type}'; expected one of: {', '.join(self._stores)}"
            ) from None

    def list_resources(self, caller_id: Optional[str], resource_type: str, **filters) -> List[Dict[str, Any]]:
        store = self.store(resource_type)
        unsupported = set(filters) - store.list_filters
        if unsupported:
            raise ValidationFailed(
                f"Unsupported {store.kind} filters: {', '.join(sorted(unsupported))}"
            )
        return store.list(caller_id, **filters)

    def get_resource(self, caller_id: Optional[str], resource_type: str, resource_id: str) -> Dict[str, Any]:
        return self.store(resource_type).get(caller_id, resource_id)

    def create_resource(self, caller_id: Optional[str], resource_type: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.store(resource_type).create(caller_id, fields)

    def update_resource(
        self,
        caller_id: Optional[str],
        resource_type: str,
        resource_id: str,
        fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self.store(resource_type).update(caller_id, resource_id, fields)

    def delete_resource(self, caller_id: Optional[str], resource_type: str, resource_id: str) -> None:
        self.store(resource_type).delete(caller_id, resource_id)

    def category_tree(self, caller_id: Optional[str]) -> List[Dict[str, Any]]:
        """Visible categories arranged by parent."""
        return build_category_tree(
            self.categories.list(caller_id),
            max_depth=settings.max_category_depth
        )

    # ==================================================================
    # Maintenance
    # ==================================================================

    def repair_missing_grants(self, caller_id: Optional[str] = None) -> List[AccessRequest]:
        """
        Write the grant for every approved request that lacks one.

        With caller_id, only that owner's requests are repaired.
        """
        repaired = []
        for request in self.ledger.approved_without_grant(owner_id=caller_id):
            self.ledger.add_grant(request)
            self.audit.log_access_decision(
                user_id=caller_id,
                action="maintenance:repair_grant",
                decision=AccessDecision.PERMIT,
                decision_reason="Grant restored for approved request",
                resource_type=request.resource_type,
                resource_id=request.resource_id,
                request_details={'request_id': request.id, 'requester_id': request.requester_id}
            )
            repaired.append(request)
        if repaired:
            logger.warning("Restored %d missing grant(s)", len(repaired))
        return repaired

    def find_orphaned_records(self) -> Dict[str, list]:
        """Ledger rows that reference deleted categories or products."""
        return {
            'requests': self.ledger.orphaned_requests(),
            'grants': self.ledger.orphaned_grants(),
        }

    def purge_orphaned_records(self) -> Dict[str, int]:
        """Delete ledger rows whose resource no longer exists."""
        orphans = self.find_orphaned_records()
        for record in orphans['requests'] + orphans['grants']:
            self.session.delete(record)
        self.session.flush()

        counts = {kind: len(rows) for kind, rows in orphans.items()}
        self.audit.log_access_decision(
            user_id=None,
            action="maintenance:purge_orphans",
            decision=AccessDecision.PERMIT,
            decision_reason="Removed ledger rows for deleted resources",
            request_details=counts
        )
        logger.info("Purged %(requests)d orphaned request(s) and %(grants)d grant(s)", counts)
        return counts

    # ==================================================================
    # Internals
    # ==================================================================

    def _write_grant(self, request: AccessRequest) -> SharedAccess:
        try:
            with self.session.begin_nested():
                return self.ledger.add_grant(request)
        except SQLAlchemyError as exc:
            logger.error(
                "Request %s approved but grant write failed; run repair_missing_grants: %s",
                request.id, exc
            )
            self.audit.log_access_decision(
                user_id=request.owner_id,
                action="grant:write",
                decision=AccessDecision.DENY,
                decision_reason=f"Grant write failed: {exc}",
                resource_type=request.resource_type,
                resource_id=request.resource_id,
                request_details={'request_id': request.id}
            )
            raise GrantWriteFailed(request.id, exc) from exc

    def _resource_names(self, requests) -> Dict[tuple, str]:
        """Map (resource_type, resource_id) to a display name for existing resources."""
        wanted = {ResourceType.CATEGORY: set(), ResourceType.PRODUCT: set()}
        for r in requests:
            wanted[r.resource_type].add(r.resource_id)

        names = {}
        if wanted[ResourceType.CATEGORY]:
            for cat in self.session.query(Category).filter(Category.id.in_(wanted[ResourceType.CATEGORY])):
                names[(ResourceType.CATEGORY, cat.id)] = cat.name
        if wanted[ResourceType.PRODUCT]:
            for prod in self.session.query(Product).filter(Product.id.in_(wanted[ResourceType.PRODUCT])):
                names[(ResourceType.PRODUCT, prod.id)] = prod.gpsr_identification_details or UNKNOWN_RESOURCE
        return names
