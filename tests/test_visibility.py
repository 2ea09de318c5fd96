"""
Redaction tests for the visibility resolver.
"""
import pytest

from core.access_control import AccessControlService
from core.visibility import PUBLIC_FIELDS, VisibilityResolver
from models.entities import Category, Product, ResourceType

SENSITIVE_PRODUCT_FIELDS = [
    'gpsr_warning_phrases', 'gpsr_warning_text', 'gpsr_pictograms',
    'gpsr_additional_safety_info', 'gpsr_statement_of_compliance',
    'gpsr_online_instructions_url', 'gpsr_instructions_manual',
    'gpsr_declarations_of_conformity', 'gpsr_certificates',
    'gpsr_moderation_status', 'gpsr_moderation_comment',
    'gpsr_last_submission_date', 'gpsr_last_moderation_date',
    'gpsr_submitted_by_supplier_user',
]


@pytest.fixture
def resolver(service):
    return VisibilityResolver(service.identity.display_name)


def test_owner_sees_everything(resolver, session, alice, product):
    row = session.get(Product, product['id'])

    view = resolver.resolve(alice.id, row, ResourceType.PRODUCT)

    assert view['gpsr_warning_text'] == "Do not cover while charging."
    assert view['gpsr_statement_of_compliance'] is True
    assert view['owner_name'] == "Alice Novak"


def test_non_owner_gets_public_projection(resolver, session, bob, product):
    row = session.get(Product, product['id'])

    view = resolver.resolve(bob.id, row, ResourceType.PRODUCT)

    for field in SENSITIVE_PRODUCT_FIELDS:
        assert field in view
        assert view[field] is None, field
    assert view['id'] == row.id
    assert view['gpsr_identification_details'] == "USB-C Charger AC-65"
    assert view['category_id'] == row.category_id
    assert view['created_at'] == row.created_at
    assert view['updated_at'] == row.updated_at
    assert view['owner_id'] == row.owner_id
    assert view['owner_name'] == "Alice Novak"


def test_category_description_hidden(resolver, session, bob, category):
    row = session.get(Category, category['id'])

    view = resolver.resolve(bob.id, row, "category")

    assert view['name'] == "Electronics"
    assert view['description'] is None
    assert set(view) == set(category)


def test_redaction_holds_after_grant(service, alice, bob, category):
    request = service.request_access(bob.id, "category", category['id'], alice.id)
    service.decide_request(alice.id, request.id, "approved")

    view = service.get_resource(bob.id, "category", category['id'])

    assert service.has_shared_access(bob.id, "category", category['id'])
    assert view['description'] is None


def test_honor_grants_upgrades_grantee(session, service, alice, bob, carol, category):
    request = service.request_access(bob.id, "category", category['id'], alice.id)
    service.decide_request(alice.id, request.id, "approved")
    grant_aware = AccessControlService(session, honor_grants=True)

    assert grant_aware.get_resource(bob.id, "category", category['id'])['description'] == "Mains powered devices"
    assert grant_aware.get_resource(carol.id, "category", category['id'])['description'] is None


def test_redact_keeps_only_public_keys():
    data = {key: "x" for key in PUBLIC_FIELDS[ResourceType.CATEGORY]}
    data.update({'description': "secret", 'owner_name': "Alice"})

    redacted = VisibilityResolver.redact(data, ResourceType.CATEGORY)

    assert redacted['description'] is None
    assert redacted['owner_name'] == "Alice"
    assert all(redacted[key] == "x" for key in PUBLIC_FIELDS[ResourceType.CATEGORY])


def test_honor_grants_needs_session():
    with pytest.raises(ValueError):
        VisibilityResolver(lambda user_id: "name", honor_grants=True)
