# FILE: tests/test_db.py
"""
Tests for app/db.py
Database core functionality - table creation, sessions, constraints, UTC handling.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
from datetime import datetime, timezone, timedelta
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError


class TestDatabaseConnection:
    """Test database connection and session creation."""

    def test_base_metadata_exists(self):
        """Test that Base metadata is properly configured."""
        from app.db import Base
        assert Base is not None
        assert hasattr(Base, 'metadata')

    def test_session_factory(self, session_factory):
        """Test session factory creates valid sessions."""
        session = session_factory()
        assert session.is_active
        session.execute(text("SELECT 1"))
        session.close()


class TestDatabaseTables:
    """Test that all expected tables are registered."""

    def test_init_db_creates_tables(self):
        """Test init_db registers and creates every model table."""
        from app.db import init_db

        engine = create_engine("sqlite:///:memory:", echo=False)
        init_db(bind=engine)

        tables = set(inspect(engine).get_table_names())
        assert {"projects", "phase_states", "onboarding_steps", "admins", "auth_sessions"} <= tables

    def test_init_db_is_idempotent(self):
        from app.db import init_db

        engine = create_engine("sqlite:///:memory:", echo=False)
        init_db(bind=engine)
        init_db(bind=engine)


class TestDatabaseIntegrity:
    """Test database integrity constraints."""

    def test_one_project_per_email_and_kit(self, mock_db):
        from app.projects.models import Project

        mock_db.add(Project(user_id="u", email="a@example.com", kit_type="LAUNCH"))
        mock_db.commit()
        mock_db.add(Project(user_id="u", email="a@example.com", kit_type="LAUNCH"))

        with pytest.raises(IntegrityError):
            mock_db.commit()
        mock_db.rollback()

    def test_one_state_row_per_phase(self, mock_db):
        from app.projects.models import Project, PhaseStateRecord

        project = Project(user_id="u", email="a@example.com", kit_type="LAUNCH")
        mock_db.add(project)
        mock_db.commit()

        mock_db.add(PhaseStateRecord(project_id=project.id, phase_id="PHASE_1", checklist={}))
        mock_db.add(PhaseStateRecord(project_id=project.id, phase_id="PHASE_1", checklist={}))
        with pytest.raises(IntegrityError):
            mock_db.commit()
        mock_db.rollback()

    def test_defaults_applied(self, mock_db):
        from app.projects.models import Project

        project = Project(user_id="u", email="a@example.com", kit_type="GROWTH")
        mock_db.add(project)
        mock_db.commit()
        mock_db.refresh(project)

        assert project.onboarding_percent == 0
        assert project.onboarding_finished is False
        assert project.created_at is not None


class TestSessionContext:
    """Test session context management."""

    def test_session_rollback_on_error(self, session_factory):
        """Test that sessions rollback on error."""
        session = session_factory()
        try:
            # Force an error
            session.execute(text("SELECT * FROM nonexistent_table"))
        except Exception:
            session.rollback()

        # Session should still be usable after rollback
        result = session.execute(text("SELECT 1"))
        assert result is not None
        session.close()

    def test_get_db_closes_session(self, monkeypatch, session_factory):
        import app.db as db_module

        monkeypatch.setattr(db_module, "SessionLocal", session_factory)
        gen = db_module.get_db()
        session = next(gen)
        assert session.is_active
        with pytest.raises(StopIteration):
            next(gen)


class TestUtcHelpers:

    def test_utcnow_is_aware(self):
        from app.db import utcnow
        assert utcnow().tzinfo is not None

    def test_as_utc_naive(self):
        from app.db import as_utc
        assert as_utc(datetime(2026, 1, 1, 12, 0)) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_as_utc_keeps_aware(self):
        from app.db import as_utc
        plus_two = datetime(2026, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(plus_two) is plus_two

    def test_as_utc_none(self):
        from app.db import as_utc
        assert as_utc(None) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
