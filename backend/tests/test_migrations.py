"""
Checks that the initial Alembic revision provisions the constraints the
admission path relies on.
"""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

REVISION_PATH = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "001_initial_schema.py"


@pytest.fixture
def revision():
    spec = importlib.util.spec_from_file_location("initial_schema", REVISION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_upgrade_creates_registration_constraints(revision):
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()

        inspector = inspect(conn)
        assert {"users", "events", "registrations"} <= set(inspector.get_table_names())

        uniques = inspector.get_unique_constraints("registrations")
        assert any(
            u["name"] == "uq_registration_event_user" and u["column_names"] == ["event_id", "user_id"]
            for u in uniques
        )
        referred = {fk["referred_table"] for fk in inspector.get_foreign_keys("registrations")}
        assert referred == {"events", "users"}

        email_index = next(i for i in inspector.get_indexes("users") if i["name"] == "ix_users_email")
        assert email_index["unique"]


def test_downgrade_drops_everything(revision):
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()
            revision.downgrade()

        assert inspect(conn).get_table_names() == []
