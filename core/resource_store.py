"""
Resource Store
==============

Owner-guarded CRUD over categories, products and suppliers.

Rules shared by every resource kind:
- create stamps owner_id with the caller's id
- update and delete load the row first: missing -> NotFound,
  owned by someone else -> Forbidden; the payload is checked only after
  that, and fully validated before any field is written
- owner_id and server timestamps are never writable by callers

Categories and products are listed to everyone (others' rows redacted by
the VisibilityResolver). Suppliers are only ever returned to their owner.
Deleting a resource leaves access requests and grants that reference it
in place; see AccessControlService.purge_orphaned_records.
"""

import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import desc
from sqlalchemy.orm import Session

from models.entities import (
    Category, Product, Supplier, ResourceType, AccessDecision, utcnow
)
from .audit import AuditLogger
from .errors import Forbidden, NotFound, ValidationFailed
from .identity import IdentityProvider, require_caller
from .visibility import VisibilityResolver, row_to_dict

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = frozenset({'id', 'owner_id', 'created_at', 'updated_at'})


class ResourceStore:
    """
    Base store for one owned resource kind.

    Subclasses set model and kind, and may override list ordering.
    list_filters names the keyword filters list() accepts.
    """

    model = None
    kind = None
    list_filters = frozenset()

    def __init__(
        self,
        session: Session,
        identity: IdentityProvider,
        resolver: VisibilityResolver,
        audit: AuditLogger
    ):
        self.session = session
        self.identity = identity
        self.resolver = resolver
        self.audit = audit

    # ------------------------------------------------------------------
    # Field handling
    # ------------------------------------------------------------------

    @classmethod
    def editable_fields(cls) -> frozenset:
        return frozenset(c.key for c in cls.model.__table__.columns) - PROTECTED_FIELDS

    def _clean_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValidationFailed(f"Fields are managed by the server: {', '.join(sorted(protected))}")
        unknown = set(fields) - self.editable_fields()
        if unknown:
            raise ValidationFailed(f"Unknown {self.kind} fields: {', '.join(sorted(unknown))}")
        return dict(fields)

    def _check_changes(self, row, changes: Dict[str, Any]) -> None:
        """Run the model validators over changes on a detached scratch instance."""
        self.model(**changes)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _view(self, caller_id: str, row, owner_name: Optional[str] = None) -> Dict[str, Any]:
        return self.resolver.resolve(caller_id, row, ResourceType(self.kind), owner_name=owner_name)

    def _views(self, caller_id: str, rows) -> List[Dict[str, Any]]:
        names = self.identity.display_names(row.owner_id for row in rows)
        return [self._view(caller_id, row, names.get(row.owner_id)) for row in rows]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, caller_id: Optional[str], fields: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row owned by the caller and return its full view."""
        caller_id = require_caller(caller_id)
        row = self.model(**self._clean_fields(fields))
        row.owner_id = caller_id
        self.session.add(row)
        self.session.flush()

        self.audit.log_access_decision(
            user_id=caller_id,
            action=f"create:{self.kind}",
            decision=AccessDecision.PERMIT,
            decision_reason="Creator becomes owner",
            resource_type=self.kind,
            resource_id=row.id
        )
        logger.info("%s %s created by %s", self.kind, row.id, caller_id)
        return self._view(caller_id, row)

    def update(self, caller_id: Optional[str], resource_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update after the ownership check.

        Every change is validated before the row is touched, so a rejected
        payload leaves the row as it was.
        """
        caller_id = require_caller(caller_id)
        row = self._load_owned(caller_id, resource_id, "update")
        changes = self._clean_fields(fields)
        self._check_changes(row, changes)

        for key, value in changes.items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        self.session.flush()
        logger.info("%s %s updated by %s (%s)", self.kind, resource_id, caller_id, ", ".join(sorted(changes)))
        return self._view(caller_id, row)

    def delete(self, caller_id: Optional[str], resource_id: str) -> None:
        """Delete after the ownership check. Ledger rows are left in place."""
        caller_id = require_caller(caller_id)
        row = self._load_owned(caller_id, resource_id, "delete")
        self.session.delete(row)
        self.session.flush()
        logger.info("%s %s deleted by %s", self.kind, resource_id, caller_id)

    def get(self, caller_id: Optional[str], resource_id: str) -> Dict[str, Any]:
        caller_id = require_caller(caller_id)
        row = self.session.get(self.model, resource_id)
        if row is None:
            raise NotFound(self.kind, resource_id)
        return self._view(caller_id, row)

    def list(self, caller_id: Optional[str]) -> List[Dict[str, Any]]:
        """Every row: the caller's own in full, everyone else's redacted."""
        caller_id = require_caller(caller_id)
        return self._views(caller_id, self._list_query().all())

    def _list_query(self):
        return self.session.query(self.model)

    def _load_owned(self, caller_id: str, resource_id: str, verb: str):
        """
        Load a row for mutation, enforcing ownership.

        Both failure cases are written to the audit trail before raising.
        """
        action = f"{verb}:{self.kind}"
        row = self.session.get(self.model, resource_id)
        if row is None:
            self._deny(caller_id, action, resource_id, f"{self.kind} not found")
            raise NotFound(self.kind, resource_id)
        if row.owner_id != caller_id:
            self._deny(caller_id, action, resource_id, "Caller is not the owner")
            raise Forbidden(f"You can only {verb} {self.kind}s you own")

        self.audit.log_access_decision(
            user_id=caller_id,
            action=action,
            decision=AccessDecision.PERMIT,
            decision_reason="Caller is the owner",
            resource_type=self.kind,
            resource_id=resource_id
        )
        return row

    def _deny(self, caller_id: str, action: str, resource_id: str, reason: str) -> None:
        logger.warning("Denied %s on %s for %s: %s", action, resource_id, caller_id, reason)
        self.audit.log_access_decision(
            user_id=caller_id,
            action=action,
            decision=AccessDecision.DENY,
            decision_reason=reason,
            resource_type=self.kind,
            resource_id=resource_id
        )


class CategoryStore(ResourceStore):
    model = Category
    kind = ResourceType.CATEGORY.value

    def _list_query(self):
        return self.session.query(Category).order_by(Category.name)

    def _check_changes(self, row, changes):
        if changes.get('parent_id') is not None and changes['parent_id'] == row.id:
            raise ValidationFailed("A category cannot be its own parent")
        super()._check_changes(row, changes)


class ProductStore(ResourceStore):
    model = Product
    kind = ResourceType.PRODUCT.value
    list_filters = frozenset({'category_id'})

    def list(self, caller_id: Optional[str], category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Products newest first, optionally limited to one category."""
        caller_id = require_caller(caller_id)
        query = self._list_query()
        if category_id:
            query = query.filter(Product.category_id == category_id)
        return self._views(caller_id, query.all())

    def _list_query(self):
        return self.session.query(Product).order_by(desc(Product.created_at))


class SupplierStore(ResourceStore):
    """
    Suppliers are private: no redacted view exists, and a supplier owned
    by someone else is reported as missing.
    """
    model = Supplier
    kind = "supplier"

    def _view(self, caller_id, row, owner_name=None):
        data = row_to_dict(row)
        data['owner_name'] = owner_name if owner_name is not None else self.identity.display_name(row.owner_id)
        return data

    def get(self, caller_id, resource_id):
        caller_id = require_caller(caller_id)
        row = self.session.get(Supplier, resource_id)
        if row is None or row.owner_id != caller_id:
            raise NotFound(self.kind, resource_id)
        return self._view(caller_id, row)

    def list(self, caller_id):
        caller_id = require_caller(caller_id)
        rows = self.session.query(Supplier).filter(
            Supplier.owner_id == caller_id
        ).order_by(Supplier.name).all()
        return self._views(caller_id, rows)
