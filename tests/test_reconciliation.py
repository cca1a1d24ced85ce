"""
tests/test_reconciliation.py — Points Reconciliation Tests
============================================================
reconcile_points() rebuilds user_points from event_log and reports what
it changed.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from forkman.database.models import EventDefinition, EventLogEntry, UserPoints
from forkman.services import reconciliation_service
from forkman.services.award_service import award_event
from forkman.services.ledger_service import get_top_users, get_user_total
from forkman.services.reconciliation_service import reconcile_points

GUILD = "100"


@pytest.fixture
def engine(seeded_engine):
    return seeded_engine


def _set_points(engine, user_id: str, points: int, guild_id: str = GUILD) -> None:
    with Session(engine) as session:
        row = session.scalar(
            select(UserPoints).where(
                UserPoints.guild_id == guild_id, UserPoints.user_id == user_id,
            )
        )
        row.points = points
        session.commit()


class TestReconcilePoints:
    def test_consistent_ledger_needs_no_fix(self, engine):
        award_event(engine, GUILD, "1", "DAILY")
        award_event(engine, GUILD, "2", "JOIN_SERVER")

        result = reconcile_points(engine)

        assert result["checked"] == 2
        assert result["corrected"] == 0
        assert result["corrections"] == []
        assert result["dangling"] == 0
        assert "timestamp" in result

    def test_drift_is_corrected(self, engine):
        award_event(engine, GUILD, "1", "DAILY")
        _set_points(engine, "1", 9999)

        result = reconcile_points(engine, GUILD)

        assert result["corrected"] == 1
        assert result["corrections"][0] == {
            "guild_id": GUILD, "user_id": "1", "stored": 9999, "actual": 85,
        }
        assert get_user_total(engine, GUILD, "1") == 85

    def test_missing_aggregate_is_created(self, engine):
        with Session(engine) as session:
            daily = session.scalar(select(EventDefinition).where(EventDefinition.key == "DAILY"))
            session.add(EventLogEntry(definition_id=daily.id, guild_id=GUILD, user_id="5"))
            session.commit()

        result = reconcile_points(engine, GUILD)

        assert result["corrections"][0]["stored"] is None
        assert get_user_total(engine, GUILD, "5") == 85
        assert [r.user_id for r in get_top_users(engine, GUILD, 5)] == ["5"]

    def test_orphan_aggregate_is_zeroed(self, engine):
        with Session(engine) as session:
            session.add(UserPoints(guild_id=GUILD, user_id="ghost", points=500))
            session.commit()

        result = reconcile_points(engine, GUILD)

        assert result["corrected"] == 1
        assert get_user_total(engine, GUILD, "ghost") == 0

    def test_scoped_to_one_guild(self, engine):
        award_event(engine, GUILD, "1", "DAILY")
        award_event(engine, "200", "1", "DAILY")
        _set_points(engine, "1", 1, guild_id="200")

        result = reconcile_points(engine, GUILD)

        assert result["corrected"] == 0
        assert get_user_total(engine, "200", "1") == 1

    def test_deleted_definition_reported(self, engine):
        award_event(engine, GUILD, "1", "DAILY")
        award_event(engine, GUILD, "1", "JOIN_SERVER")
        with Session(engine) as session:
            join = session.scalar(
                select(EventDefinition).where(EventDefinition.key == "JOIN_SERVER")
            )
            session.delete(join)
            session.commit()

        result = reconcile_points(engine, GUILD)

        assert result["dangling"] == 1
        assert get_user_total(engine, GUILD, "1") == 85


class TestReconcileConcurrency:
    def test_first_award_landing_mid_run(self, file_db_engine, monkeypatch):
        engine = file_db_engine
        award_event(engine, GUILD, "1", "DAILY")
        read_ledger = reconciliation_service.compute_ledger_totals

        def award_then_read(session, guild_id):
            # User 2's very first award commits after the existing rows
            # were locked but before the ledger is summed.
            award_event(engine, guild_id, "2", "DAILY")
            return read_ledger(session, guild_id)

        monkeypatch.setattr(reconciliation_service, "compute_ledger_totals", award_then_read)

        result = reconcile_points(engine, GUILD)

        assert result["checked"] == 2
        assert result["corrected"] == 0
        assert get_user_total(engine, GUILD, "2") == 85

    def test_each_guild_commits_on_its_own(self, engine, monkeypatch):
        award_event(engine, GUILD, "1", "DAILY")
        award_event(engine, "200", "1", "DAILY")
        _set_points(engine, "1", 1)
        read_ledger = reconciliation_service.compute_ledger_totals

        def fail_second_guild(session, guild_id):
            if guild_id == "200":
                raise RuntimeError("connection lost")
            return read_ledger(session, guild_id)

        monkeypatch.setattr(reconciliation_service, "compute_ledger_totals", fail_second_guild)

        with pytest.raises(RuntimeError):
            reconcile_points(engine)

        assert get_user_total(engine, GUILD, "1") == 85
