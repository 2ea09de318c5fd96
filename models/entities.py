"""
Entity Models for GPSR Compliance Records
=========================================

Owned resources:
- Categories: Hierarchical grouping of products (parent_id forms a forest)
- Products: GPSR product-safety metadata
- Suppliers: Private contact records, never shared

Sharing ledger:
- Access Requests: Non-owner asks the owner for a full view
- Shared Access: Durable grant written when a request is approved

Every owned row carries owner_id, stamped from the caller at creation and
never changed afterwards.
"""

import enum
import re
import uuid
from datetime import datetime, timezone
from urllib.parse import urlparse

from sqlalchemy import (
    Column, String, DateTime, Boolean, ForeignKey, Text, JSON,
    Enum as SQLEnum
)
from sqlalchemy.orm import validates

from core.errors import ValidationFailed
from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite round-trips."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class ResourceType(str, enum.Enum):
    """Resource kinds that can be shared through the access ledger."""
    CATEGORY = "category"
    PRODUCT = "product"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccessDecision(enum.Enum):
    """Possible outcomes recorded in the audit trail."""
    PERMIT = "PERMIT"
    DENY = "DENY"


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_link(field: str, value):
    """Accept http(s) URLs or relative blob-store paths."""
    if value is None or value == "":
        return value
    parsed = urlparse(value)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return value
    if not parsed.scheme and not value.startswith("/") and " " not in value:
        return value
    raise ValidationFailed(f"{field} must be an http(s) URL or a storage path, got '{value}'")


# ============================================================================
# Identity
# ============================================================================

class User(Base):
    """
    Identity profile for a caller.

    Authentication happens elsewhere; this table only maps the stable user
    id to a display name for listings.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True)
    full_name = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


# ============================================================================
# Owned Resources
# ============================================================================

class Category(Base):
    """Product category. Categories nest through parent_id."""
    __tablename__ = 'categories'

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    # No FK: parents may be deleted while children survive
    parent_id = Column(String(36), index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @validates('name')
    def _validate_name(self, key, value):
        if not value or not value.strip():
            raise ValidationFailed("Category name is required")
        return value.strip()

    @validates('parent_id')
    def _validate_parent(self, key, value):
        if value is not None and self.id is not None and value == self.id:
            raise ValidationFailed("A category cannot be its own parent")
        return value or None

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Product(Base):
    """
    Product with its GPSR (General Product Safety Regulation) record.

    gpsr_identification_details doubles as the product title. Document
    fields hold opaque blob-store paths.
    """
    __tablename__ = 'products'

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    category_id = Column(String(36), index=True)

    gpsr_identification_details = Column(Text)
    gpsr_warning_phrases = Column(JSON)
    gpsr_warning_text = Column(Text)
    gpsr_pictograms = Column(JSON)
    gpsr_additional_safety_info = Column(Text)
    gpsr_statement_of_compliance = Column(Boolean)
    gpsr_online_instructions_url = Column(String(2048))
    gpsr_instructions_manual = Column(String(1024))
    gpsr_declarations_of_conformity = Column(String(1024))
    gpsr_certificates = Column(String(1024))
    gpsr_moderation_status = Column(String(50))
    gpsr_moderation_comment = Column(Text)
    gpsr_last_submission_date = Column(DateTime)
    gpsr_last_moderation_date = Column(DateTime)
    gpsr_submitted_by_supplier_user = Column(String(255))

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @validates('gpsr_online_instructions_url')
    def _validate_instructions_url(self, key, value):
        return _check_link(key, value) or None

    @validates('gpsr_pictograms', 'gpsr_warning_phrases')
    def _validate_string_list(self, key, value):
        if value is None:
            return None
        if isinstance(value, str) or not all(isinstance(item, str) for item in value):
            raise ValidationFailed(f"{key} must be a list of strings")
        items = [item.strip() for item in value if item.strip()]
        if key == 'gpsr_pictograms':
            for item in items:
                _check_link(key, item)
        return items

    @property
    def title(self):
        return self.gpsr_identification_details

    def __repr__(self):
        return f"<Product(id={self.id}, title='{self.gpsr_identification_details}')>"


class Supplier(Base):
    """Supplier contact. Only ever visible to its owner."""
    __tablename__ = 'suppliers'

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255))
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @validates('name')
    def _validate_name(self, key, value):
        if not value or not value.strip():
            raise ValidationFailed("Supplier name is required")
        return value.strip()

    @validates('email')
    def _validate_email(self, key, value):
        if not value:
            return None
        if not _EMAIL_RE.match(value):
            raise ValidationFailed(f"Invalid email address '{value}'")
        return value

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}')>"


# ============================================================================
# Sharing Ledger
# ============================================================================

class AccessRequest(Base):
    """
    A non-owner's request to see a resource in full.

    Transitions pending -> approved or pending -> rejected; both terminal.
    resource_id carries no foreign key so requests survive resource deletion.
    """
    __tablename__ = 'access_requests'

    id = Column(String(36), primary_key=True, default=new_id)
    requester_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    resource_type = Column(SQLEnum(ResourceType), nullable=False)
    resource_id = Column(String(36), nullable=False, index=True)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    message = Column(Text)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<AccessRequest(id={self.id}, {self.resource_type.value}={self.resource_id}, "
            f"status={self.status.value})>"
        )


class SharedAccess(Base):
    """Grant written when an owner approves a request. Append-only."""
    __tablename__ = 'shared_access'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    resource_type = Column(SQLEnum(ResourceType), nullable=False)
    resource_id = Column(String(36), nullable=False, index=True)
    granted_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<SharedAccess(user_id={self.user_id}, {self.resource_type.value}={self.resource_id})>"


# ============================================================================
# Audit Logging
# ============================================================================

class AuditLog(Base):
    """
    Audit record for ownership checks, sharing decisions and maintenance.
    """
    __tablename__ = 'audit_logs'

    id = Column(String(36), primary_key=True, default=new_id)
    timestamp = Column(DateTime, default=utcnow, index=True)

    # Who
    user_id = Column(String(36))

    # What
    action = Column(String(100), nullable=False)
    resource_type = Column(String(50))
    resource_id = Column(String(36))

    # Decision
    decision = Column(SQLEnum(AccessDecision), nullable=False)
    decision_reason = Column(Text)

    # Additional metadata
    request_details = Column(Text)  # JSON

    def __repr__(self):
        return f"<AuditLog(id={self.id}, user='{self.user_id}', action='{self.action}', decision={self.decision})>"
