"""
Ownership guard tests for categories, products and suppliers.
"""
from datetime import datetime

import pytest

from core.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from models.entities import AccessRequest, Category, Product


class TestCreate:

    def test_create_stamps_caller_as_owner(self, service, alice):
        row = service.create_resource(alice.id, "category", {'name': "Toys"})

        assert row['owner_id'] == alice.id
        assert row['owner_name'] == "Alice Novak"
        assert row['id']
        assert row['created_at'] is not None

    def test_create_without_caller_fails(self, service):
        with pytest.raises(Unauthenticated):
            service.create_resource(None, "category", {'name': "Toys"})

    def test_owner_id_cannot_be_supplied(self, service, alice, bob):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "category", {'name': "Toys", 'owner_id': bob.id})

    def test_unknown_field_rejected(self, service, alice):
        with pytest.raises(ValidationFailed, match="colour"):
            service.create_resource(alice.id, "product", {'colour': "red"})

    def test_unknown_resource_type_rejected(self, service, alice):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "widget", {'name': "x"})


class TestUpdate:

    def test_owner_can_update(self, service, alice, category):
        row = service.update_resource(alice.id, "category", category['id'], {'description': "Updated"})

        assert row['description'] == "Updated"
        assert row['name'] == "Electronics"

    def test_update_refreshes_updated_at(self, service, session, alice, category):
        session.get(Category, category['id']).updated_at = datetime(2000, 1, 1)
        session.flush()

        row = service.update_resource(alice.id, "category", category['id'], {'name': "Devices"})

        assert row['updated_at'] > datetime(2000, 1, 1)

    @pytest.mark.parametrize("resource_type", ["category", "product", "supplier"])
    def test_non_owner_update_forbidden(self, service, alice, bob, resource_type):
        fields = {
            'category': {'name': "Mine"},
            'product': {'gpsr_identification_details': "Mine"},
            'supplier': {'name': "Mine"},
        }[resource_type]
        row = service.create_resource(alice.id, resource_type, fields)

        with pytest.raises(Forbidden):
            service.update_resource(bob.id, resource_type, row['id'], fields)

    def test_update_missing_resource(self, service, alice):
        with pytest.raises(NotFound):
            service.update_resource(alice.id, "product", "does-not-exist", {'gpsr_warning_text': "x"})

    def test_update_without_caller(self, service, category):
        with pytest.raises(Unauthenticated):
            service.update_resource(None, "category", category['id'], {'name': "x"})

    def test_category_cannot_parent_itself(self, service, alice, category):
        with pytest.raises(ValidationFailed):
            service.update_resource(alice.id, "category", category['id'], {'parent_id': category['id']})

    def test_rejected_update_leaves_row_untouched(self, service, session, alice, product):
        with pytest.raises(ValidationFailed):
            service.update_resource(alice.id, "product", product['id'], {
                'gpsr_identification_details': "Renamed",
                'gpsr_online_instructions_url': "ftp://example.com/manual.pdf",
            })

        row = session.get(Product, product['id'])
        assert row.gpsr_identification_details == "USB-C Charger AC-65"
        assert row.gpsr_online_instructions_url == "https://example.com/ac-65"
        assert row not in session.dirty

    @pytest.mark.parametrize("payload", [
        {'owner_id': "someone"},
        {'colour': "red"},
        {'name': ""},
    ])
    def test_ownership_checked_before_payload(self, service, alice, bob, category, payload):
        with pytest.raises(Forbidden):
            service.update_resource(bob.id, "category", category['id'], payload)

    def test_non_owner_self_parent_is_forbidden(self, service, alice, bob, category):
        with pytest.raises(Forbidden):
            service.update_resource(bob.id, "category", category['id'], {'parent_id': category['id']})

    def test_missing_row_reported_before_payload(self, service, alice):
        with pytest.raises(NotFound):
            service.update_resource(alice.id, "category", "does-not-exist", {'owner_id': alice.id})


class TestDelete:

    def test_owner_can_delete(self, service, session, alice, product):
        service.delete_resource(alice.id, "product", product['id'])

        assert session.get(Product, product['id']) is None

    def test_non_owner_delete_forbidden(self, service, session, bob, product):
        with pytest.raises(Forbidden):
            service.delete_resource(bob.id, "product", product['id'])

        assert session.get(Product, product['id']) is not None

    def test_delete_leaves_ledger_rows(self, service, session, alice, bob, category):
        service.request_access(bob.id, "category", category['id'], alice.id)
        service.delete_resource(alice.id, "category", category['id'])

        assert session.query(AccessRequest).filter_by(resource_id=category['id']).count() == 1


class TestListing:

    def test_categories_merge_own_and_redacted(self, service, alice, bob, category):
        service.create_resource(bob.id, "category", {'name': "Garden", 'description': "Bob's notes"})

        rows = service.list_resources(alice.id, "category")

        assert [r['name'] for r in rows] == ["Electronics", "Garden"]
        assert rows[0]['description'] == "Mains powered devices"
        assert rows[1]['description'] is None
        assert rows[1]['owner_name'] == "Bob Lindqvist"

    def test_products_newest_first(self, service, session, alice, bob):
        older = service.create_resource(alice.id, "product", {'gpsr_identification_details': "Old"})
        newer = service.create_resource(bob.id, "product", {'gpsr_identification_details': "New"})
        session.get(Product, older['id']).created_at = datetime(2020, 1, 1)
        session.get(Product, newer['id']).created_at = datetime(2024, 1, 1)
        session.flush()

        rows = service.list_resources(alice.id, "product")

        assert [r['gpsr_identification_details'] for r in rows] == ["New", "Old"]

    def test_products_filtered_by_category(self, service, alice, product):
        service.create_resource(alice.id, "product", {'gpsr_identification_details': "Uncategorised"})

        rows = service.list_resources(alice.id, "product", category_id=product['category_id'])

        assert [r['id'] for r in rows] == [product['id']]

    def test_listing_requires_caller(self, service):
        with pytest.raises(Unauthenticated):
            service.list_resources(None, "category")

    @pytest.mark.parametrize("resource_type", ["category", "supplier"])
    def test_category_filter_only_for_products(self, service, alice, product, resource_type):
        with pytest.raises(ValidationFailed, match="category_id"):
            service.list_resources(alice.id, resource_type, category_id=product['category_id'])

    def test_unknown_product_filter(self, service, alice):
        with pytest.raises(ValidationFailed, match="colour"):
            service.list_resources(alice.id, "product", colour="red")


class TestSuppliers:

    def test_suppliers_only_listed_to_owner(self, service, alice, bob):
        service.create_resource(alice.id, "supplier", {'name': "Acme"})
        service.create_resource(bob.id, "supplier", {'name': "Bolt Ltd"})

        assert [s['name'] for s in service.list_resources(alice.id, "supplier")] == ["Acme"]
        assert [s['name'] for s in service.list_resources(bob.id, "supplier")] == ["Bolt Ltd"]

    def test_other_users_supplier_is_not_found(self, service, alice, bob):
        supplier = service.create_resource(alice.id, "supplier", {'name': "Acme", 'phone': "123"})

        with pytest.raises(NotFound):
            service.get_resource(bob.id, "supplier", supplier['id'])

        assert service.get_resource(alice.id, "supplier", supplier['id'])['phone'] == "123"

    def test_suppliers_listed_by_name(self, service, alice):
        for name in ["Zeta", "Alpha", "Mid"]:
            service.create_resource(alice.id, "supplier", {'name': name})

        assert [s['name'] for s in service.list_resources(alice.id, "supplier")] == ["Alpha", "Mid", "Zeta"]


class TestValidation:

    @pytest.mark.parametrize("url", ["ftp://example.com/a", "not a url", "javascript:alert(1)", "/etc/passwd"])
    def test_bad_instructions_url(self, service, alice, url):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "product", {'gpsr_online_instructions_url': url})

    def test_storage_paths_accepted(self, service, alice):
        row = service.create_resource(alice.id, "product", {
            'gpsr_pictograms': ["https://cdn.example.com/ce.svg", "uploads/weee.svg"],
        })

        assert row['gpsr_pictograms'] == ["https://cdn.example.com/ce.svg", "uploads/weee.svg"]

    def test_bad_pictogram(self, service, alice):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "product", {'gpsr_pictograms': ["bad path"]})

    def test_pictograms_must_be_a_list(self, service, alice):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "product", {'gpsr_pictograms': "uploads/ce.svg"})

    def test_supplier_email(self, service, alice):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "supplier", {'name': "Acme", 'email': "nobody"})

    def test_blank_category_name(self, service, alice):
        with pytest.raises(ValidationFailed):
            service.create_resource(alice.id, "category", {'name': "   "})
