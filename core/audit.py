"""
Audit Logging Module
====================

Records every ownership check, access request, approval decision and
maintenance action against the compliance records.

Entries written through one AuditLogger can be carried across a rollback
(see trail/restore), so a refused write still leaves its denial behind
while the caller's own changes are discarded.
"""

import csv
import io
import json
from datetime import timedelta
from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from models.entities import AuditLog, AccessDecision, utcnow

EXPORT_COLUMNS = (
    'timestamp', 'user_id', 'action', 'resource_type',
    'resource_id', 'decision', 'decision_reason',
)


class AuditLogger:
    """
    Append-only audit trail for the records store.
    """

    def __init__(self, session: Session):
        self.session = session
        self._written: List[AuditLog] = []

    def log_access_decision(
        self,
        user_id: Optional[str],
        action: str,
        decision: AccessDecision,
        decision_reason: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        request_details: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        """
        Log an access control decision.

        Args:
            user_id: ID of the caller (None when unauthenticated)
            action: Operation attempted, e.g. 'update:product'
            decision: PERMIT or DENY
            decision_reason: Explanation for the decision
            resource_type: 'category', 'product', 'supplier' or 'access_request'
            resource_id: Target id
            request_details: Additional context as dictionary

        Returns:
            Created AuditLog entry
        """
        log_entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=getattr(resource_type, 'value', resource_type),
            resource_id=resource_id,
            decision=decision,
            decision_reason=decision_reason,
            request_details=json.dumps(request_details, default=str) if request_details else None
        )

        self.session.add(log_entry)
        self.session.flush()
        self._written.append(log_entry)
        return log_entry

    def trail(self) -> List[Dict[str, Any]]:
        """Column values of the entries this logger has written, oldest first."""
        columns = [c.key for c in AuditLog.__table__.columns]
        return [{key: getattr(entry, key) for key in columns} for entry in self._written]

    def restore(self, trail: List[Dict[str, Any]]) -> None:
        """Re-insert entries captured with trail() after a rollback dropped them."""
        self._written = [AuditLog(**values) for values in trail]
        self.session.add_all(self._written)
        self.session.flush()

    def get_logs(
        self,
        user_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        decision: Optional[AccessDecision] = None,
        hours: Optional[int] = None,
        limit: Optional[int] = 100
    ) -> List[AuditLog]:
        """Entries matching every given filter, newest first."""
        query = self.session.query(AuditLog)

        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        if resource_type is not None:
            query = query.filter(AuditLog.resource_type == getattr(resource_type, 'value', resource_type))
        if resource_id is not None:
            query = query.filter(AuditLog.resource_id == resource_id)
        if decision is not None:
            query = query.filter(AuditLog.decision == decision)
        if hours is not None:
            query = query.filter(AuditLog.timestamp >= utcnow() - timedelta(hours=hours))

        query = query.order_by(desc(AuditLog.timestamp))
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_recent_denials(self, hours: int = 24, limit: int = 50) -> List[AuditLog]:
        """
        Refused operations: writes by non-owners, decisions on other users'
        requests, failed grant writes.
        """
        return self.get_logs(decision=AccessDecision.DENY, hours=hours, limit=limit)

    def export_logs(self, format: str = 'json', hours: Optional[int] = None) -> str:
        """Serialize the trail as 'json' or 'csv'."""
        if format not in ('json', 'csv'):
            raise ValueError(f"Unsupported format: {format}")

        rows = [
            {
                'timestamp': log.timestamp.isoformat(),
                'user_id': log.user_id,
                'action': log.action,
                'resource_type': log.resource_type,
                'resource_id': log.resource_id,
                'decision': log.decision.value,
                'decision_reason': log.decision_reason,
            }
            for log in self.get_logs(hours=hours, limit=None)
        ]

        if format == 'json':
            return json.dumps(rows, indent=2)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    def get_statistics(self, hours: int = 24) -> Dict[str, Any]:
        """
        Decision counts for the period, broken down by decision, action and
        resource type.
        """
        since = AuditLog.timestamp >= utcnow() - timedelta(hours=hours)

        def counts(column) -> Dict[Any, int]:
            rows = self.session.query(column, func.count(AuditLog.id)).filter(since).group_by(column)
            return {key: count for key, count in rows}

        by_decision = counts(AuditLog.decision)
        permits = by_decision.get(AccessDecision.PERMIT, 0)
        denials = by_decision.get(AccessDecision.DENY, 0)
        total = permits + denials
        unique_users = self.session.query(
            func.count(func.distinct(AuditLog.user_id))
        ).filter(since).scalar()

        return {
            'period_hours': hours,
            'total_decisions': total,
            'permits': permits,
            'denials': denials,
            'denial_rate': denials / total if total else 0,
            'by_action': counts(AuditLog.action),
            'by_resource_type': {key or '-': count for key, count in counts(AuditLog.resource_type).items()},
            'unique_users': unique_users or 0,
        }
