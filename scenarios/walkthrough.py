"""
Sharing Walkthrough
===================

Runs the sharing workflow end to end against the configured database and
prints a PASS/FAIL table for each expectation. All writes happen in a
session that is rolled back afterwards, so the walkthrough never changes
stored data.

Scenarios:
1. Sharing - request, approve, grant, redaction stays in place
2. Deletion - incoming requests survive the resource being deleted
3. Ownership - non-owners cannot change or decide anything
"""

from contextlib import contextmanager

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from models import database
from models.entities import User
from core.access_control import AccessControlService
from core.errors import Forbidden, InvalidTransition

console = Console()


def run_scenarios(scenario_name: str = "all"):
    """
    Run walkthrough scenarios.

    Args:
        scenario_name: Which scenario to run (sharing, deletion, ownership, all)
    """
    scenarios = {
        'sharing': run_sharing_scenario,
        'deletion': run_deletion_scenario,
        'ownership': run_ownership_scenario,
    }

    console.print(Panel(
        "[bold]Sharing Walkthrough[/bold]\n\n"
        "Two throwaway users exercise the request/approval workflow.\n"
        "Nothing is committed to the database.",
        title="Walkthrough",
        box=box.DOUBLE
    ))

    if scenario_name == "all":
        for name, func in scenarios.items():
            console.print(f"\n[bold cyan]{'='*60}[/bold cyan]")
            func()
    elif scenario_name in scenarios:
        scenarios[scenario_name]()
    else:
        console.print(f"[red]Unknown scenario: {scenario_name}[/red]")
        console.print(f"Available: {', '.join(scenarios.keys())}, all")


@contextmanager
def _scratch():
    """Service plus two fresh users in a session that is always rolled back."""
    database.init_db()
    session = database.SessionLocal()
    try:
        owner = User(username="walkthrough-owner", full_name="Walkthrough Owner")
        viewer = User(username="walkthrough-viewer", full_name="Walkthrough Viewer")
        session.add_all([owner, viewer])
        session.flush()
        yield AccessControlService(session, honor_grants=False), owner.id, viewer.id
    finally:
        session.rollback()
        session.close()


def _raises(exc_type, func, *args):
    try:
        func(*args)
    except exc_type:
        return True
    return False


def run_sharing_scenario():
    """
    Scenario: Request, approve, grant

    The owner creates a category; the viewer sees only its name, asks for
    access, and is granted it. The listing stays redacted.
    """
    console.print(Panel(
        "[bold]Scenario: Request and Approval[/bold]\n\n"
        "Owner creates 'Electronics'. Viewer requests access, owner approves.",
        title="Sharing Scenario",
        box=box.ROUNDED
    ))

    with _scratch() as (service, owner, viewer):
        category = service.create_resource(owner, "category", {
            'name': "Electronics", 'description': "Internal sourcing notes"
        })
        seen = _find(service.list_resources(viewer, "category"), category['id'])

        request = service.request_access(viewer, "category", category['id'], owner, "please share")
        requested = service.has_requested_access(viewer, "category", category['id'])
        incoming = service.list_incoming_requests(owner)

        service.decide_request(owner, request.id, "approved")
        after = _find(service.list_resources(viewer, "category"), category['id'])

        checks = [
            ("Viewer sees the category name", seen['name'] == "Electronics"),
            ("Viewer does not see the description", seen['description'] is None),
            ("Owner name is shown", seen['owner_name'] == "Walkthrough Owner"),
            ("Pending request is reported", requested),
            ("Owner has one incoming request", len(incoming) == 1 and incoming[0]['requester_name'] == "Walkthrough Viewer"),
            ("Grant exists after approval", service.has_shared_access(viewer, "category", category['id'])),
            ("Request no longer pending", not service.has_requested_access(viewer, "category", category['id'])),
            ("Listing is still redacted", after['description'] is None),
            ("Second decision is refused", _raises(InvalidTransition, service.decide_request, owner, request.id, "rejected")),
        ]

    _report(checks, "Sharing Checks")


def run_deletion_scenario():
    """
    Scenario: Deleted resource with pending requests

    Incoming requests must still list, with the name shown as 'Unknown'.
    """
    console.print(Panel(
        "[bold]Scenario: Deleting a Requested Resource[/bold]\n\n"
        "Owner deletes a category that has a pending request on it.",
        title="Deletion Scenario",
        box=box.ROUNDED
    ))

    with _scratch() as (service, owner, viewer):
        category = service.create_resource(owner, "category", {'name': "Short-lived"})
        service.request_access(viewer, "category", category['id'], owner)
        service.delete_resource(owner, "category", category['id'])
        incoming = service.list_incoming_requests(owner)
        orphans = service.find_orphaned_records()

        checks = [
            ("Incoming requests still list", len(incoming) == 1),
            ("Missing resource shows as Unknown", incoming[0]['resource_name'] == "Unknown"),
            ("Orphaned request is detected", len(orphans['requests']) >= 1),
        ]

    _report(checks, "Deletion Checks")


def run_ownership_scenario():
    """
    Scenario: Non-owners are refused

    Updates, deletes and decisions by anyone but the owner fail.
    """
    console.print(Panel(
        "[bold]Scenario: Ownership Guard[/bold]\n\n"
        "Viewer tries to edit and delete the owner's product and to approve\n"
        "a request addressed to the owner.",
        title="Ownership Scenario",
        box=box.ROUNDED
    ))

    with _scratch() as (service, owner, viewer):
        product = service.create_resource(owner, "product", {
            'gpsr_identification_details': "Kettle K-1",
            'gpsr_warning_text': "Hot surface",
        })
        supplier = service.create_resource(owner, "supplier", {'name': "Acme Parts"})
        request = service.request_access(viewer, "product", product['id'], owner)

        checks = [
            ("Viewer cannot update", _raises(Forbidden, service.update_resource, viewer, "product", product['id'], {'gpsr_warning_text': "x"})),
            ("Viewer cannot delete", _raises(Forbidden, service.delete_resource, viewer, "product", product['id'])),
            ("Viewer cannot approve own request", _raises(Forbidden, service.decide_request, viewer, request.id, "approved")),
            ("Warning text hidden from viewer", service.get_resource(viewer, "product", product['id'])['gpsr_warning_text'] is None),
            ("Suppliers are private", all(s['id'] != supplier['id'] for s in service.list_resources(viewer, "supplier"))),
        ]

    _report(checks, "Ownership Checks")


def _find(rows, resource_id):
    return next(row for row in rows if row['id'] == resource_id)


def _report(checks, title):
    """
    Display a PASS/FAIL table for (description, passed) pairs.
    """
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Check")
    table.add_column("Result")

    passed = 0
    failed = 0
    for description, ok in checks:
        if ok:
            passed += 1
            table.add_row(description, "[green]PASS[/green]")
        else:
            failed += 1
            table.add_row(description, "[red]FAIL[/red]")

    console.print(table)
    console.print(f"\nResults: [green]{passed} passed[/green], [red]{failed} failed[/red]")


if __name__ == "__main__":
    run_scenarios("all")
