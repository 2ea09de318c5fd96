"""
CLI tests run through Typer's CliRunner against a temporary SQLite file.
"""
import pytest
from rich.console import Console
from sqlalchemy.orm import sessionmaker
from typer.testing import CliRunner

import cli.main as cli_main
import models.database as database
from models.entities import AccessRequest, AuditLog, Category, Product, RequestStatus, User

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """Point the CLI at a fresh database with two users."""
    engine = database.build_engine(f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))
    monkeypatch.setattr(cli_main, "console", Console(width=250))
    database.init_db()

    with database.get_session() as session:
        session.add_all([
            User(username="alice", full_name="Alice Novak"),
            User(username="bob", full_name="Bob Lindqvist"),
        ])
    yield database.SessionLocal
    engine.dispose()


def invoke(*args):
    return runner.invoke(cli_main.app, list(args))


def _category_id(Session, name):
    session = Session()
    try:
        return session.query(Category).filter_by(name=name).one().id
    finally:
        session.close()


def test_create_and_list_category(cli_db):
    result = invoke("categories", "create", "--as", "alice", "--name", "Electronics", "--description", "secret notes")
    assert result.exit_code == 0, result.output

    own = invoke("categories", "list", "--as", "alice")
    other = invoke("categories", "list", "--as", "bob")

    assert "secret notes" in own.output
    assert "Electronics" in other.output
    assert "secret notes" not in other.output
    assert "hidden" in other.output


def test_non_owner_update_exits_with_error(cli_db):
    invoke("categories", "create", "--as", "alice", "--name", "Electronics")
    category_id = _category_id(cli_db, "Electronics")

    result = invoke("categories", "update", category_id, "--as", "bob", "--name", "Stolen")

    assert result.exit_code == 1
    assert "Forbidden" in result.output

    denials = invoke("audit", "denials")
    assert "update:category" in denials.output


def test_unknown_user(cli_db):
    result = invoke("categories", "list", "--as", "mallory")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_request_and_approve(cli_db):
    invoke("categories", "create", "--as", "alice", "--name", "Electronics")
    category_id = _category_id(cli_db, "Electronics")

    requested = invoke("access", "request", category_id, "--as", "bob", "--message", "please share")
    assert requested.exit_code == 0, requested.output
    assert "Alice Novak" in requested.output

    incoming = invoke("access", "incoming", "--as", "alice")
    assert "Bob Lindqvist" in incoming.output
    assert "pending" in incoming.output

    session = cli_db()
    request_id = session.query(AccessRequest).one().id
    session.close()

    approved = invoke("access", "approve", request_id, "--as", "alice")
    assert approved.exit_code == 0, approved.output

    status = invoke("access", "status", category_id, "--as", "bob")
    assert "Access granted:  yes" in status.output

    again = invoke("access", "reject", request_id, "--as", "alice")
    assert again.exit_code == 1
    assert "InvalidTransition" in again.output

    session = cli_db()
    assert session.get(AccessRequest, request_id).status == RequestStatus.APPROVED
    session.close()


def test_suppliers_are_private(cli_db):
    invoke("suppliers", "create", "--as", "alice", "--name", "Acme Parts", "--email", "sales@acme.example.com")

    assert "Acme Parts" in invoke("suppliers", "list", "--as", "alice").output
    assert "Acme Parts" not in invoke("suppliers", "list", "--as", "bob").output


def test_orphan_purge(cli_db):
    invoke("categories", "create", "--as", "alice", "--name", "Short-lived")
    category_id = _category_id(cli_db, "Short-lived")
    invoke("access", "request", category_id, "--as", "bob")
    invoke("categories", "delete", category_id, "--as", "alice")

    incoming = invoke("access", "incoming", "--as", "alice")
    assert "Unknown" in incoming.output

    purged = invoke("maintenance", "purge-orphans")
    assert "Removed 1 request(s) and 0 grant(s)" in purged.output


def test_rejected_update_is_not_saved(cli_db):
    invoke("products", "create", "--as", "alice", "--title", "Kettle K-1",
           "--instructions-url", "https://example.com/k1")
    session = cli_db()
    product_id = session.query(Product).one().id
    session.close()

    result = invoke("products", "update", product_id, "--as", "alice",
                    "--title", "Renamed", "--instructions-url", "ftp://example.com/k1")
    assert result.exit_code == 1
    assert "ValidationFailed" in result.output

    session = cli_db()
    try:
        assert session.get(Product, product_id).gpsr_identification_details == "Kettle K-1"
        actions = [log.action for log in session.query(AuditLog).filter_by(resource_id=product_id)]
    finally:
        session.close()
    assert actions.count("update:product") == 1
