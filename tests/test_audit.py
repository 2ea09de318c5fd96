"""
Audit trail tests.
"""
import csv
import io
import json

import pytest

from core.audit import AuditLogger
from core.errors import Forbidden
from models.entities import AccessDecision, Category


@pytest.fixture
def audit(session):
    return AuditLogger(session)


def test_denied_update_is_logged(service, audit, alice, bob, category):
    with pytest.raises(Forbidden):
        service.update_resource(bob.id, "category", category['id'], {'name': "Mine now"})

    denials = audit.get_recent_denials()

    assert len(denials) == 1
    assert denials[0].user_id == bob.id
    assert denials[0].action == "update:category"
    assert denials[0].resource_id == category['id']


def test_decisions_are_logged(service, audit, alice, bob, category):
    request = service.request_access(bob.id, "category", category['id'], alice.id)
    service.decide_request(alice.id, request.id, "approved")

    actions = [log.action for log in audit.get_logs(resource_id=category['id'])]

    assert "request:access" in actions
    assert "decide:approved" in actions


def test_filter_by_decision(service, audit, alice, bob, category):
    with pytest.raises(Forbidden):
        service.delete_resource(bob.id, "category", category['id'])

    permits = audit.get_logs(decision=AccessDecision.PERMIT)
    denials = audit.get_logs(decision=AccessDecision.DENY)

    assert {log.action for log in permits} == {"create:category"}
    assert [log.action for log in denials] == ["delete:category"]


def test_export_json(service, audit, alice, category):
    exported = json.loads(audit.export_logs(format='json'))

    assert exported[0]['action'] == "create:category"
    assert exported[0]['decision'] == "PERMIT"


def test_export_csv(service, audit, alice, category):
    rows = list(csv.DictReader(io.StringIO(audit.export_logs(format='csv'))))

    assert rows[0]['resource_id'] == category['id']


def test_export_unknown_format(audit):
    with pytest.raises(ValueError):
        audit.export_logs(format='xml')


def test_statistics(service, audit, alice, bob, category):
    with pytest.raises(Forbidden):
        service.update_resource(bob.id, "category", category['id'], {'name': "x"})

    stats = audit.get_statistics()

    assert stats['total_decisions'] == 2
    assert stats['denials'] == 1
    assert stats['denial_rate'] == 0.5
    assert stats['unique_users'] == 2
    assert stats['by_resource_type'] == {'category': 2}


def test_filter_by_resource_type(service, audit, alice, category, product):
    products = audit.get_logs(resource_type="product")

    assert [log.resource_id for log in products] == [product['id']]


def test_trail_survives_rollback(service, session, audit, alice, bob, category):
    with pytest.raises(Forbidden):
        service.delete_resource(bob.id, "category", category['id'])

    trail = service.audit.trail()
    session.rollback()
    service.audit.restore(trail)

    assert {log.action for log in audit.get_logs()} == {"create:category", "delete:category"}
    assert session.query(Category).count() == 0


def test_export_csv_quotes_reasons(service, audit, alice):
    audit.log_access_decision(alice.id, "grant:write", AccessDecision.DENY, "failed, retry later")

    rows = list(csv.DictReader(io.StringIO(audit.export_logs(format='csv'))))

    assert rows[0]['decision_reason'] == "failed, retry later"
