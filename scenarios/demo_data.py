"""
Demo Data Loader
================

Creates a small multi-user data set for exploring the sharing model:

- alice owns an electronics catalogue (nested categories, products, suppliers)
- bob owns a garden catalogue and has a pending request on alice's data
- carol has already been granted access to one of alice's products

Everything is created through AccessControlService, so ownership stamps,
audit entries and grants are the same as real usage produces.
"""

from datetime import datetime

from models.database import init_db, get_session
from models.entities import (
    User, Category, Product, Supplier,
    AccessRequest, SharedAccess, AuditLog
)
from core.access_control import AccessControlService


def load_demo_data():
    """
    Load demo data, replacing whatever is in the database.

    Creates:
    - 3 users
    - 5 categories in two trees
    - 4 products
    - 3 suppliers
    - 3 access requests (pending, approved, rejected)
    """
    init_db()

    with get_session() as session:
        # Clear existing data (for idempotent loading)
        for model in (AuditLog, SharedAccess, AccessRequest, Supplier, Product, Category, User):
            session.query(model).delete()
        session.commit()

        # ================================================================
        # Create Users
        # ================================================================
        users = {
            'alice': User(username="alice", full_name="Alice Novak", email="alice@example.com"),
            'bob': User(username="bob", full_name="Bob Lindqvist", email="bob@example.com"),
            'carol': User(username="carol", full_name="Carol Mendes", email="carol@example.com"),
        }
        session.add_all(users.values())
        session.flush()
        alice, bob, carol = (users[name].id for name in ('alice', 'bob', 'carol'))

        service = AccessControlService(session)

        # ================================================================
        # Categories
        # ================================================================
        electronics = service.create_resource(alice, "category", {
            'name': "Electronics",
            'description': "Mains and battery powered devices"
        })
        chargers = service.create_resource(alice, "category", {
            'name': "Chargers",
            'description': "USB and wireless chargers",
            'parent_id': electronics['id']
        })
        service.create_resource(alice, "category", {
            'name': "Toys",
            'description': "Toys for children under 14 (EN 71)"
        })
        garden = service.create_resource(bob, "category", {
            'name': "Garden",
            'description': "Outdoor tools and furniture"
        })
        service.create_resource(bob, "category", {
            'name': "Power Tools",
            'description': "Battery hedge trimmers and mowers",
            'parent_id': garden['id']
        })

        # ================================================================
        # Products
        # ================================================================
        charger = service.create_resource(alice, "product", {
            'category_id': chargers['id'],
            'gpsr_identification_details': "65W USB-C GaN Charger, model AC-65",
            'gpsr_warning_phrases': ["Indoor use only", "Keep away from water"],
            'gpsr_warning_text': "Do not cover the charger while in use.",
            'gpsr_pictograms': ["pictograms/indoor-only.svg", "pictograms/weee.svg"],
            'gpsr_statement_of_compliance': True,
            'gpsr_online_instructions_url': "https://example.com/manuals/ac-65",
            'gpsr_instructions_manual': f"{alice}/ac-65-manual.pdf",
            'gpsr_declarations_of_conformity': f"{alice}/ac-65-doc.pdf",
            'gpsr_moderation_status': "approved",
            'gpsr_last_submission_date': datetime(2024, 11, 4, 9, 30),
            'gpsr_last_moderation_date': datetime(2024, 11, 6, 14, 0),
        })
        service.create_resource(alice, "product", {
            'category_id': electronics['id'],
            'gpsr_identification_details': "Bluetooth Speaker BS-10",
            'gpsr_warning_text': "Contains a lithium-ion battery.",
            'gpsr_statement_of_compliance': False,
            'gpsr_moderation_status': "pending",
        })
        trimmer = service.create_resource(bob, "product", {
            'category_id': garden['id'],
            'gpsr_identification_details': "Cordless Hedge Trimmer HT-18",
            'gpsr_warning_phrases': ["Wear eye protection"],
            'gpsr_statement_of_compliance': True,
            'gpsr_submitted_by_supplier_user': "greenline-supplier",
        })
        service.create_resource(bob, "product", {
            'gpsr_identification_details': "Solar Garden Light SL-3",
        })

        # ================================================================
        # Suppliers (private)
        # ================================================================
        service.create_resource(alice, "supplier", {
            'name': "Shenzhen Power Co.",
            'contact_person': "Li Wei",
            'email': "sales@szpower.example.com",
            'phone': "+86 755 0000 0000",
        })
        service.create_resource(alice, "supplier", {
            'name': "Nordic Plastics AB",
            'email': "orders@nordicplastics.example.com",
            'notes': "Toy housings",
        })
        service.create_resource(bob, "supplier", {
            'name': "GreenLine Tools GmbH",
            'contact_person': "Jana Weber",
            'address': "Industriestr. 5, 70565 Stuttgart",
        })

        # ================================================================
        # Access requests
        # ================================================================
        service.request_access(bob, "category", electronics['id'], alice,
                               "We stock similar chargers, could you share your category notes?")

        carol_request = service.request_access(carol, "product", charger['id'], alice)
        service.decide_request(alice, carol_request.id, "approved")

        alice_request = service.request_access(alice, "product", trimmer['id'], bob)
        service.decide_request(bob, alice_request.id, "rejected")
