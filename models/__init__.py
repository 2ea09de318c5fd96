# GPSR Compliance Records - Database Models
# Owned resources plus the access request / shared access ledger

from .database import Base, engine, get_session, init_db
from .entities import (
    User,
    Category,
    Product,
    Supplier,
    AccessRequest,
    SharedAccess,
    AuditLog,
    ResourceType,
    RequestStatus,
    AccessDecision
)

__all__ = [
    'Base',
    'engine',
    'get_session',
    'init_db',
    'User',
    'Category',
    'Product',
    'Supplier',
    'AccessRequest',
    'SharedAccess',
    'AuditLog',
    'ResourceType',
    'RequestStatus',
    'AccessDecision'
]
