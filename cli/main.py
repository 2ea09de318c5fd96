"""
GPSR Compliance Records - Interactive CLI
=========================================

Command-line front end for the compliance records core:

- Categories, products and suppliers with owner-only writes
- Cross-user access requests and approvals
- Ledger maintenance (missing grants, orphaned rows)
- Audit log review

Every command that acts on data takes --as <username> to name the caller.

Built with Typer and Rich.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

# Initialize CLI app and console
app = typer.Typer(
    name="gpsr-records",
    help="GPSR compliance records with owner-controlled sharing",
    add_completion=False
)

console = Console()

# Sub-commands
users_app = typer.Typer(help="Manage user profiles")
categories_app = typer.Typer(help="Manage categories")
products_app = typer.Typer(help="Manage products and their GPSR data")
suppliers_app = typer.Typer(help="Manage private supplier contacts")
access_app = typer.Typer(help="Request, approve and inspect shared access")
maintenance_app = typer.Typer(help="Repair and reconcile the access ledger")
audit_app = typer.Typer(help="View audit logs")
test_app = typer.Typer(help="Run walkthrough scenarios")

app.add_typer(users_app, name="users")
app.add_typer(categories_app, name="categories")
app.add_typer(products_app, name="products")
app.add_typer(suppliers_app, name="suppliers")
app.add_typer(access_app, name="access")
app.add_typer(maintenance_app, name="maintenance")
app.add_typer(audit_app, name="audit")
app.add_typer(test_app, name="test")

AS_USER = typer.Option(..., "--as", help="Username of the caller")


def get_session():
    """Get a database session."""
    from models.database import get_session
    return get_session()


@contextmanager
def acting_as(username: str):
    """
    Open a session and service for the named caller.

    Access control errors are printed and turn into exit code 1. The
    command's changes are rolled back but its audit entries are kept, so
    denials stay in the log. A failed grant write keeps the approval,
    which `maintenance repair-grants` completes later.
    """
    from core.access_control import AccessControlService
    from core.errors import AccessControlError, GrantWriteFailed
    from core.identity import IdentityProvider

    with get_session() as session:
        user = IdentityProvider(session).find_by_username(username)
        if not user:
            console.print(f"[red]User '{username}' not found[/red]")
            raise typer.Exit(code=1)

        service = AccessControlService(session)
        try:
            yield service, user.id
        except AccessControlError as exc:
            if not isinstance(exc, GrantWriteFailed):
                trail = service.audit.trail()
                session.rollback()
                service.audit.restore(trail)
            session.commit()
            console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
            raise typer.Exit(code=1)


def _fmt(value, mine: bool = False) -> str:
    if value is None:
        return "-" if mine else "[dim]hidden[/dim]"
    if isinstance(value, list):
        return ", ".join(value) or "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _changes(**fields) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


def print_banner():
    """Display application banner."""
    banner = """
    ╔═══════════════════════════════════════════════════════════╗
    ║              GPSR COMPLIANCE RECORDS                      ║
    ║                                                           ║
    ║     Categories · Products · Suppliers · Shared Access     ║
    ╚═══════════════════════════════════════════════════════════╝
    """
    console.print(Panel(banner, style="bold blue"))


# ============================================================================
# Database Commands
# ============================================================================

@app.command()
def init():
    """Initialize the database with schema."""
    from models.database import init_db
    init_db()
    console.print("[green]Database initialized successfully![/green]")


@app.command()
def reset():
    """Reset database (WARNING: destroys all data)."""
    if typer.confirm("This will delete all data. Are you sure?"):
        from models.database import reset_db
        reset_db()
        console.print("[yellow]Database reset complete.[/yellow]")


@app.command()
def demo():
    """Load demo data for testing."""
    from scenarios import load_demo_data
    load_demo_data()
    console.print("[green]Demo data loaded successfully![/green]")
    console.print("\nTry these commands to explore:")
    console.print("  [cyan]python main.py categories tree --as bob[/cyan]")
    console.print("  [cyan]python main.py products list --as bob[/cyan]")
    console.print("  [cyan]python main.py access incoming --as alice[/cyan]")


# ============================================================================
# User Commands
# ============================================================================

@users_app.command("list")
def list_users():
    """List all user profiles."""
    from models.entities import User

    with get_session() as session:
        users = session.query(User).order_by(User.username).all()

        table = Table(title="Users", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("Username", style="green")
        table.add_column("Full Name")
        table.add_column("Email")
        table.add_column("Status", justify="center")

        for user in users:
            status = "[green]Active[/green]" if user.is_active else "[red]Inactive[/red]"
            table.add_row(user.id, user.username, user.full_name or "-", user.email or "-", status)

        console.print(table)


@users_app.command("create")
def create_user(
    username: str = typer.Option(..., help="Username"),
    full_name: str = typer.Option(None, help="Full name"),
    email: str = typer.Option(None, help="Email address")
):
    """Create a new user profile."""
    from models.entities import User

    with get_session() as session:
        user = User(username=username, full_name=full_name, email=email)
        session.add(user)
        session.flush()
        console.print(f"[green]Created user: {username} (ID: {user.id})[/green]")


# ============================================================================
# Category Commands
# ============================================================================

@categories_app.command("list")
def list_categories(user: str = AS_USER):
    """List categories: yours in full, others' by name only."""
    with acting_as(user) as (service, caller_id):
        rows = service.list_resources(caller_id, "category")

        table = Table(title="Categories", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Description")
        table.add_column("Owner")
        table.add_column("Access", justify="center")

        for row in rows:
            table.add_row(
                row['id'], row['name'],
                _fmt(row['description'], mine=row['owner_id'] == caller_id),
                row['owner_name'],
                _access_badge(service, caller_id, "category", row)
            )
        console.print(table)


@categories_app.command("tree")
def category_tree(user: str = AS_USER):
    """Show categories nested under their parents."""
    with acting_as(user) as (service, caller_id):
        root = Tree("[bold]Categories[/bold]")

        def add(branch, nodes):
            for node in nodes:
                mine = node['owner_id'] == caller_id
                label = f"[green]{node['name']}[/green]" if mine else f"{node['name']} [dim]({node['owner_name']})[/dim]"
                add(branch.add(label), node['children'])

        add(root, service.category_tree(caller_id))
        console.print(root)


@categories_app.command("create")
def create_category(
    user: str = AS_USER,
    name: str = typer.Option(..., help="Category name"),
    description: str = typer.Option(None, help="Description"),
    parent: str = typer.Option(None, help="Parent category ID")
):
    """Create a category owned by the caller."""
    with acting_as(user) as (service, caller_id):
        row = service.create_resource(
            caller_id, "category",
            _changes(name=name, description=description, parent_id=parent)
        )
        console.print(f"[green]Created category: {row['name']} (ID: {row['id']})[/green]")


@categories_app.command("update")
def update_category(
    category_id: str = typer.Argument(..., help="Category ID"),
    user: str = AS_USER,
    name: str = typer.Option(None, help="New name"),
    description: str = typer.Option(None, help="New description"),
    parent: str = typer.Option(None, help="New parent category ID")
):
    """Update a category you own."""
    with acting_as(user) as (service, caller_id):
        row = service.update_resource(
            caller_id, "category", category_id,
            _changes(name=name, description=description, parent_id=parent)
        )
        console.print(f"[green]Updated category: {row['name']}[/green]")


@categories_app.command("delete")
def delete_category(
    category_id: str = typer.Argument(..., help="Category ID"),
    user: str = AS_USER
):
    """Delete a category you own."""
    with acting_as(user) as (service, caller_id):
        service.delete_resource(caller_id, "category", category_id)
        console.print(f"[yellow]Deleted category {category_id}[/yellow]")


# ============================================================================
# Product Commands
# ============================================================================

@products_app.command("list")
def list_products(
    user: str = AS_USER,
    category: str = typer.Option(None, help="Only products in this category")
):
    """List products: yours in full, others' by title only."""
    with acting_as(user) as (service, caller_id):
        filters = {'category_id': category} if category else {}
        rows = service.list_resources(caller_id, "product", **filters)

        table = Table(title="Products", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("Title", style="green")
        table.add_column("Compliant", justify="center")
        table.add_column("Moderation")
        table.add_column("Owner")
        table.add_column("Access", justify="center")

        for row in rows:
            table.add_row(
                row['id'],
                row['gpsr_identification_details'] or "-",
                _fmt(row['gpsr_statement_of_compliance'], mine=row['owner_id'] == caller_id),
                _fmt(row['gpsr_moderation_status'], mine=row['owner_id'] == caller_id),
                row['owner_name'],
                _access_badge(service, caller_id, "product", row)
            )
        console.print(table)


@products_app.command("show")
def show_product(
    product_id: str = typer.Argument(..., help="Product ID"),
    user: str = AS_USER
):
    """Show a product's GPSR record (redacted unless you own it)."""
    with acting_as(user) as (service, caller_id):
        row = service.get_resource(caller_id, "product", product_id)

        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in row.items():
            table.add_row(key, _fmt(value, mine=row['owner_id'] == caller_id))

        console.print(Panel(table, title=row['gpsr_identification_details'] or product_id, box=box.ROUNDED))
        if row['owner_id'] != caller_id:
            console.print(f"  Access: {_access_badge(service, caller_id, 'product', row)}")


@products_app.command("create")
def create_product(
    user: str = AS_USER,
    title: str = typer.Option(..., help="Identification details (product title)"),
    category: str = typer.Option(None, help="Category ID"),
    warning_text: str = typer.Option(None, help="Warning text"),
    warning_phrase: Optional[List[str]] = typer.Option(None, help="Warning phrase (repeatable)"),
    pictogram: Optional[List[str]] = typer.Option(None, help="Pictogram URL or path (repeatable)"),
    safety_info: str = typer.Option(None, help="Additional safety information"),
    compliant: Optional[bool] = typer.Option(None, "--compliant/--not-compliant", help="Statement of compliance"),
    instructions_url: str = typer.Option(None, help="Online instructions URL"),
    manual: str = typer.Option(None, help="Instructions manual storage path"),
    declaration: str = typer.Option(None, help="Declaration of conformity storage path"),
    certificates: str = typer.Option(None, help="Certificates storage path"),
    supplier_user: str = typer.Option(None, help="Submitting supplier user")
):
    """Create a product owned by the caller."""
    with acting_as(user) as (service, caller_id):
        row = service.create_resource(caller_id, "product", _changes(
            gpsr_identification_details=title,
            category_id=category,
            gpsr_warning_text=warning_text,
            gpsr_warning_phrases=warning_phrase or None,
            gpsr_pictograms=pictogram or None,
            gpsr_additional_safety_info=safety_info,
            gpsr_statement_of_compliance=compliant,
            gpsr_online_instructions_url=instructions_url,
            gpsr_instructions_manual=manual,
            gpsr_declarations_of_conformity=declaration,
            gpsr_certificates=certificates,
            gpsr_submitted_by_supplier_user=supplier_user
        ))
        console.print(f"[green]Created product: {title} (ID: {row['id']})[/green]")


@products_app.command("update")
def update_product(
    product_id: str = typer.Argument(..., help="Product ID"),
    user: str = AS_USER,
    title: str = typer.Option(None, help="Identification details (product title)"),
    category: str = typer.Option(None, help="Category ID"),
    warning_text: str = typer.Option(None, help="Warning text"),
    compliant: Optional[bool] = typer.Option(None, "--compliant/--not-compliant", help="Statement of compliance"),
    instructions_url: str = typer.Option(None, help="Online instructions URL"),
    moderation_status: str = typer.Option(None, help="Moderation status"),
    moderation_comment: str = typer.Option(None, help="Moderation comment")
):
    """Update a product you own."""
    with acting_as(user) as (service, caller_id):
        row = service.update_resource(caller_id, "product", product_id, _changes(
            gpsr_identification_details=title,
            category_id=category,
            gpsr_warning_text=warning_text,
            gpsr_statement_of_compliance=compliant,
            gpsr_online_instructions_url=instructions_url,
            gpsr_moderation_status=moderation_status,
            gpsr_moderation_comment=moderation_comment
        ))
        console.print(f"[green]Updated product: {row['gpsr_identification_details']}[/green]")


@products_app.command("delete")
def delete_product(
    product_id: str = typer.Argument(..., help="Product ID"),
    user: str = AS_USER
):
    """Delete a product you own."""
    with acting_as(user) as (service, caller_id):
        service.delete_resource(caller_id, "product", product_id)
        console.print(f"[yellow]Deleted product {product_id}[/yellow]")


# ============================================================================
# Supplier Commands
# ============================================================================

@suppliers_app.command("list")
def list_suppliers(user: str = AS_USER):
    """List your suppliers."""
    with acting_as(user) as (service, caller_id):
        rows = service.list_resources(caller_id, "supplier")

        table = Table(title="Suppliers", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Contact")
        table.add_column("Email")
        table.add_column("Phone")

        for row in rows:
            table.add_row(
                row['id'], row['name'], row['contact_person'] or "-",
                row['email'] or "-", row['phone'] or "-"
            )
        console.print(table)


@suppliers_app.command("create")
def create_supplier(
    user: str = AS_USER,
    name: str = typer.Option(..., help="Company name"),
    contact: str = typer.Option(None, help="Contact person"),
    email: str = typer.Option(None, help="Email address"),
    phone: str = typer.Option(None, help="Phone number"),
    address: str = typer.Option(None, help="Postal address"),
    notes: str = typer.Option(None, help="Notes")
):
    """Create a supplier contact."""
    with acting_as(user) as (service, caller_id):
        row = service.create_resource(caller_id, "supplier", _changes(
            name=name, contact_person=contact, email=email,
            phone=phone, address=address, notes=notes
        ))
        console.print(f"[green]Created supplier: {row['name']} (ID: {row['id']})[/green]")


@suppliers_app.command("update")
def update_supplier(
    supplier_id: str = typer.Argument(..., help="Supplier ID"),
    user: str = AS_USER,
    name: str = typer.Option(None, help="Company name"),
    contact: str = typer.Option(None, help="Contact person"),
    email: str = typer.Option(None, help="Email address"),
    phone: str = typer.Option(None, help="Phone number"),
    address: str = typer.Option(None, help="Postal address"),
    notes: str = typer.Option(None, help="Notes")
):
    """Update a supplier you own."""
    with acting_as(user) as (service, caller_id):
        row = service.update_resource(caller_id, "supplier", supplier_id, _changes(
            name=name, contact_person=contact, email=email,
            phone=phone, address=address, notes=notes
        ))
        console.print(f"[green]Updated supplier: {row['name']}[/green]")


@suppliers_app.command("delete")
def delete_supplier(
    supplier_id: str = typer.Argument(..., help="Supplier ID"),
    user: str = AS_USER
):
    """Delete a supplier you own."""
    with acting_as(user) as (service, caller_id):
        service.delete_resource(caller_id, "supplier", supplier_id)
        console.print(f"[yellow]Deleted supplier {supplier_id}[/yellow]")


# ============================================================================
# Access Commands
# ============================================================================

def _access_badge(service, caller_id: str, resource_type: str, row: dict) -> str:
    if row['owner_id'] == caller_id:
        return "[green]owner[/green]"
    if service.has_shared_access(caller_id, resource_type, row['id']):
        return "[cyan]granted[/cyan]"
    if service.has_requested_access(caller_id, resource_type, row['id']):
        return "[yellow]requested[/yellow]"
    return "[dim]-[/dim]"


@access_app.command("request")
def request_access(
    resource_id: str = typer.Argument(..., help="Category or product ID"),
    user: str = AS_USER,
    resource_type: str = typer.Option("category", "--type", "-t", help="category or product"),
    message: str = typer.Option(None, "--message", "-m", help="Note for the owner")
):
    """Ask the owner of a category or product for access."""
    with acting_as(user) as (service, caller_id):
        view = service.get_resource(caller_id, resource_type, resource_id)
        request = service.request_access(caller_id, resource_type, resource_id, view['owner_id'], message)
        console.print(
            f"[green]Access requested from {view['owner_name']} "
            f"(request ID: {request.id})[/green]"
        )


@access_app.command("incoming")
def incoming_requests(user: str = AS_USER):
    """Show requests for access to your resources."""
    with acting_as(user) as (service, caller_id):
        requests = service.list_incoming_requests(caller_id)
        if not requests:
            console.print("[green]No access requests.[/green]")
            return

        table = Table(title="Incoming Access Requests", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("From", style="green")
        table.add_column("Type")
        table.add_column("Resource")
        table.add_column("Status")
        table.add_column("Message")
        table.add_column("Received", style="dim")

        styles = {'pending': 'yellow', 'approved': 'green', 'rejected': 'red'}
        for req in requests:
            style = styles[req['status']]
            table.add_row(
                req['id'], req['requester_name'], req['resource_type'], req['resource_name'],
                f"[{style}]{req['status']}[/{style}]",
                (req['message'] or "-")[:40],
                req['created_at'].strftime("%Y-%m-%d %H:%M") if req['created_at'] else "-"
            )
        console.print(table)


@access_app.command("outgoing")
def outgoing_requests(user: str = AS_USER):
    """Show the requests you have made."""
    with acting_as(user) as (service, caller_id):
        table = Table(title="My Access Requests", box=box.ROUNDED)
        table.add_column("ID", style="cyan")
        table.add_column("Owner", style="green")
        table.add_column("Type")
        table.add_column("Resource")
        table.add_column("Status")

        for req in service.list_outgoing_requests(caller_id):
            table.add_row(req['id'], req['owner_name'], req['resource_type'], req['resource_name'], req['status'])
        console.print(table)


@access_app.command("approve")
def approve_request(
    request_id: str = typer.Argument(..., help="Access request ID"),
    user: str = AS_USER
):
    """Approve a pending request and grant access."""
    with acting_as(user) as (service, caller_id):
        service.decide_request(caller_id, request_id, "approved")
        console.print(f"[green]Request {request_id} approved[/green]")


@access_app.command("reject")
def reject_request(
    request_id: str = typer.Argument(..., help="Access request ID"),
    user: str = AS_USER
):
    """Reject a pending request."""
    with acting_as(user) as (service, caller_id):
        service.decide_request(caller_id, request_id, "rejected")
        console.print(f"[yellow]Request {request_id} rejected[/yellow]")


@access_app.command("status")
def access_status(
    resource_id: str = typer.Argument(..., help="Category or product ID"),
    user: str = AS_USER,
    resource_type: str = typer.Option("category", "--type", "-t", help="category or product")
):
    """Show whether you have requested or been granted access."""
    with acting_as(user) as (service, caller_id):
        requested = service.has_requested_access(caller_id, resource_type, resource_id)
        granted = service.has_shared_access(caller_id, resource_type, resource_id)
        console.print(f"  Pending request: {'[yellow]yes[/yellow]' if requested else 'no'}")
        console.print(f"  Access granted:  {'[green]yes[/green]' if granted else 'no'}")


@access_app.command("grants")
def list_grants(user: str = AS_USER):
    """List resources shared with you."""
    with acting_as(user) as (service, caller_id):
        table = Table(title="Shared With Me", box=box.ROUNDED)
        table.add_column("Type")
        table.add_column("Resource ID", style="cyan")
        table.add_column("Owner", style="green")
        table.add_column("Granted", style="dim")

        for grant in service.list_grants(caller_id):
            table.add_row(
                grant.resource_type.value, grant.resource_id,
                service.identity.display_name(grant.owner_id),
                grant.granted_at.strftime("%Y-%m-%d %H:%M") if grant.granted_at else "-"
            )
        console.print(table)


# ============================================================================
# Maintenance Commands
# ============================================================================

@maintenance_app.command("repair-grants")
def repair_grants(
    user: str = typer.Option(None, "--as", help="Only repair this owner's requests")
):
    """Write grants for approved requests that are missing one."""
    from core.access_control import AccessControlService
    from core.identity import IdentityProvider

    with get_session() as session:
        owner_id = None
        if user:
            owner = IdentityProvider(session).find_by_username(user)
            if not owner:
                console.print(f"[red]User '{user}' not found[/red]")
                raise typer.Exit(code=1)
            owner_id = owner.id

        repaired = AccessControlService(session).repair_missing_grants(owner_id)
        if not repaired:
            console.print("[green]Every approved request has its grant.[/green]")
            return
        for request in repaired:
            console.print(f"  [yellow]restored[/yellow] grant for request {request.id}")
        console.print(f"[green]Repaired {len(repaired)} request(s)[/green]")


@maintenance_app.command("orphans")
def show_orphans():
    """List ledger rows that point at deleted resources."""
    from core.access_control import AccessControlService

    with get_session() as session:
        orphans = AccessControlService(session).find_orphaned_records()

        table = Table(title="Orphaned Ledger Rows", box=box.ROUNDED)
        table.add_column("Kind")
        table.add_column("ID", style="cyan")
        table.add_column("Resource")

        for request in orphans['requests']:
            table.add_row("request", request.id, f"{request.resource_type.value} {request.resource_id}")
        for grant in orphans['grants']:
            table.add_row("grant", grant.id, f"{grant.resource_type.value} {grant.resource_id}")
        console.print(table)


@maintenance_app.command("purge-orphans")
def purge_orphans():
    """Delete ledger rows that point at deleted resources."""
    from core.access_control import AccessControlService

    with get_session() as session:
        counts = AccessControlService(session).purge_orphaned_records()
        console.print(
            f"[green]Removed {counts['requests']} request(s) and {counts['grants']} grant(s)[/green]"
        )


# ============================================================================
# Test Commands
# ============================================================================

@test_app.command("scenario")
def run_scenario(
    scenario_name: str = typer.Argument("all", help="Scenario: sharing, deletion, ownership, or all")
):
    """Run the sharing walkthrough scenarios against the current database."""
    from scenarios import run_scenarios
    run_scenarios(scenario_name)


# ============================================================================
# Audit Commands
# ============================================================================

@audit_app.command("logs")
def view_logs(
    limit: int = typer.Option(20, "--limit", "-l", help="Number of logs to show"),
    user: str = typer.Option(None, "--user", "-u", help="Filter by username"),
    resource_type: str = typer.Option(None, "--type", "-t", help="Filter by resource type"),
    decision: str = typer.Option(None, "--decision", "-d", help="Filter by decision (PERMIT/DENY)")
):
    """View audit logs."""
    from models.entities import AccessDecision as AD
    from core.audit import AuditLogger
    from core.identity import IdentityProvider

    with get_session() as session:
        identity = IdentityProvider(session)

        user_id = None
        if user:
            u = identity.find_by_username(user)
            if u:
                user_id = u.id

        dec = None
        if decision:
            dec = AD.PERMIT if decision.upper() == "PERMIT" else AD.DENY

        logs = AuditLogger(session).get_logs(
            user_id=user_id, resource_type=resource_type, decision=dec, limit=limit
        )
        names = identity.display_names(log.user_id for log in logs)

        table = Table(title="Audit Logs", box=box.ROUNDED)
        table.add_column("Time", style="dim")
        table.add_column("User", style="cyan")
        table.add_column("Action")
        table.add_column("Resource")
        table.add_column("Decision")
        table.add_column("Reason")

        for log in logs:
            dec_style = "green" if log.decision == AD.PERMIT else "red"
            table.add_row(
                log.timestamp.strftime("%H:%M:%S") if log.timestamp else "-",
                names.get(log.user_id, "-"),
                log.action or "-",
                f"{log.resource_type} {log.resource_id}" if log.resource_id else "-",
                f"[{dec_style}]{log.decision.value}[/{dec_style}]",
                (log.decision_reason or "-")[:30]
            )

        console.print(table)


@audit_app.command("stats")
def audit_stats(hours: int = typer.Option(24, help="Analysis period in hours")):
    """Show decision statistics."""
    from core.audit import AuditLogger

    with get_session() as session:
        stats = AuditLogger(session).get_statistics(hours=hours)
        actions = "\n".join(f"  {action}: {count}" for action, count in sorted(stats['by_action'].items()))
        kinds = "\n".join(f"  {kind}: {count}" for kind, count in sorted(stats['by_resource_type'].items()))

        console.print(Panel(
            f"""
[bold]Period:[/bold] Last {stats['period_hours']} hours

[bold]Total Decisions:[/bold] {stats['total_decisions']}
[bold]Permits:[/bold] [green]{stats['permits']}[/green]
[bold]Denials:[/bold] [red]{stats['denials']}[/red] ({stats['denial_rate']:.1%})
[bold]Unique Users:[/bold] {stats['unique_users']}

[bold]By Action:[/bold]
{actions or '  -'}

[bold]By Resource Type:[/bold]
{kinds or '  -'}
""",
            title="Access Control Statistics",
            box=box.ROUNDED
        ))


@audit_app.command("denials")
def recent_denials(hours: int = typer.Option(24, help="Look back period")):
    """Show recent denied operations."""
    from core.audit import AuditLogger
    from core.identity import IdentityProvider

    with get_session() as session:
        denials = AuditLogger(session).get_recent_denials(hours=hours)

        if not denials:
            console.print("[green]No access denials in the specified period.[/green]")
            return

        names = IdentityProvider(session).display_names(log.user_id for log in denials)
        table = Table(title=f"Access Denials (Last {hours}h)", box=box.ROUNDED)
        table.add_column("Time", style="dim")
        table.add_column("User", style="cyan")
        table.add_column("Action", style="yellow")
        table.add_column("Resource")
        table.add_column("Reason")

        for log in denials:
            table.add_row(
                log.timestamp.strftime("%Y-%m-%d %H:%M:%S") if log.timestamp else "-",
                names.get(log.user_id, "-"),
                log.action or "-",
                log.resource_id or "-",
                (log.decision_reason or "-")[:40]
            )

        console.print(table)


@audit_app.command("export")
def export_logs(
    output: str = typer.Option("audit_export.json", "--output", "-o", help="Output file"),
    format: str = typer.Option("json", "--format", "-f", help="Format: json or csv"),
    hours: int = typer.Option(None, "--hours", help="Only the last N hours")
):
    """Export audit logs to a file."""
    from core.audit import AuditLogger

    with get_session() as session:
        data = AuditLogger(session).export_logs(format=format, hours=hours)

        with open(output, 'w') as f:
            f.write(data)

        console.print(f"[green]Exported audit logs to {output}[/green]")


# ============================================================================
# Main Entry Point
# ============================================================================

@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output")
):
    """
    GPSR Compliance Records

    Owners keep full control of their categories and products; other users
    see names only until the owner approves an access request.
    """
    from config.settings import settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )

    if ctx.invoked_subcommand is None:
        print_banner()
        console.print("\nUse [cyan]--help[/cyan] to see available commands.\n")
        console.print("Quick Start:")
        console.print("  1. [cyan]python main.py init[/cyan]                     - Initialize database")
        console.print("  2. [cyan]python main.py demo[/cyan]                     - Load demo data")
        console.print("  3. [cyan]python main.py categories list --as bob[/cyan] - Browse as another user")
        console.print("  4. [cyan]python main.py test scenario[/cyan]            - Run the sharing walkthrough")
        console.print()


if __name__ == "__main__":
    app()
