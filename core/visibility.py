"""
Visibility Resolver
===================

Decides which fields of a category or product a caller may see.

- The owner sees every column.
- Everyone else sees the public projection: id, title, parent/category
  link, timestamps and owner identity. Every other column is present in
  the result but set to None, so consumers can rely on key presence.

Redaction is applied even when the caller holds a SharedAccess grant.
Set GPSR_HONOR_GRANTS to let grantees see full records instead.
"""

import logging
from typing import Any, Callable, Dict, Optional
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from models.entities import ResourceType, SharedAccess

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = {
    ResourceType.CATEGORY: frozenset({
        'id', 'name', 'parent_id', 'created_at', 'updated_at', 'owner_id',
    }),
    ResourceType.PRODUCT: frozenset({
        'id', 'gpsr_identification_details', 'category_id',
        'created_at', 'updated_at', 'owner_id',
    }),
}


def row_to_dict(row) -> Dict[str, Any]:
    """Column values of an ORM row keyed by column name."""
    return {attr.key: getattr(row, attr.key) for attr in sa_inspect(row).mapper.column_attrs}


class VisibilityResolver:
    """
    Computes full or redacted views of shareable resources.

    Args:
        owner_names: Callable mapping a user id to a display name
        session: Needed only when honor_grants is on, to look up grants
        honor_grants: Upgrade grantees to the full view
    """

    def __init__(
        self,
        owner_names: Callable[[str], str],
        session: Optional[Session] = None,
        honor_grants: bool = False
    ):
        if honor_grants and session is None:
            raise ValueError("honor_grants requires a session for grant lookups")
        self.owner_names = owner_names
        self.session = session
        self.honor_grants = honor_grants

    def resolve(
        self,
        caller_id: str,
        row,
        resource_type: ResourceType,
        owner_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Return the view of row that caller_id is allowed to see.

        owner_name may be passed in when the caller already resolved it
        (batch listings); otherwise it is looked up.
        """
        resource_type = ResourceType(resource_type)
        data = row_to_dict(row)
        data['owner_name'] = owner_name if owner_name is not None else self.owner_names(row.owner_id)

        if row.owner_id == caller_id:
            return data
        if self.honor_grants and self._has_grant(caller_id, resource_type, row.id):
            return data
        return self.redact(data, resource_type)

    @staticmethod
    def redact(data: Dict[str, Any], resource_type: ResourceType) -> Dict[str, Any]:
        """Null every field outside the public projection."""
        public = PUBLIC_FIELDS[ResourceType(resource_type)]
        return {
            key: (value if key in public or key == 'owner_name' else None)
            for key, value in data.items()
        }

    def _has_grant(self, caller_id: str, resource_type: ResourceType, resource_id: str) -> bool:
        grant = self.session.query(SharedAccess.id).filter(
            SharedAccess.user_id == caller_id,
            SharedAccess.resource_type == resource_type,
            SharedAccess.resource_id == resource_id
        ).first()
        if grant:
            logger.debug("Grant lifts redaction of %s %s for %s", resource_type.value, resource_id, caller_id)
        return grant is not None

