"""
tests/test_ledger_service.py — Query Surface Tests
====================================================
Totals, leaderboard ordering, ranks, history, and ledger-derived totals
with deleted event definitions.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from forkman.database.models import EventDefinition
from forkman.database.seed import seed_default_events
from forkman.errors import UnknownEvent
from forkman.services import ledger_service
from forkman.services.award_service import award_event

GUILD = "100"


@pytest.fixture
def engine(seeded_engine):
    seed_default_events(seeded_engine, {"CHAT": ("Chat message", 5, 0)})
    return seeded_engine


def _give(engine, user_id: str, *keys: str) -> None:
    for key in keys:
        award_event(engine, GUILD, user_id, key)


class TestTotals:
    def test_unknown_user_has_zero(self, engine):
        assert ledger_service.get_user_total(engine, GUILD, "nobody") == 0

    def test_total_after_awards(self, engine):
        _give(engine, "1", "DAILY", "CHAT")
        assert ledger_service.get_user_total(engine, GUILD, "1") == 90


class TestLeaderboard:
    def test_sorted_descending(self, engine):
        _give(engine, "a", "DAILY")                  # 85
        _give(engine, "b", "BOOST_SERVER")           # 3570
        _give(engine, "c", "JOIN_SERVER")            # 213

        rows = ledger_service.get_top_users(engine, GUILD, 10)

        assert [r.user_id for r in rows] == ["b", "c", "a"]
        assert [r.rank for r in rows] == [1, 2, 3]
        assert rows[0].points == 3570

    def test_limit_truncates(self, engine):
        for uid in ("a", "b", "c", "d"):
            _give(engine, uid, "DAILY")

        assert len(ledger_service.get_top_users(engine, GUILD, 2)) == 2

    def test_ties_keep_first_earned_order(self, engine):
        _give(engine, "first", "CHAT")
        _give(engine, "second", "CHAT")
        _give(engine, "top", "DAILY")

        rows = ledger_service.get_top_users(engine, GUILD, 10)

        assert [r.user_id for r in rows] == ["top", "first", "second"]

    def test_other_guilds_excluded(self, engine):
        _give(engine, "a", "DAILY")
        award_event(engine, "999", "b", "BOOST_SERVER")

        rows = ledger_service.get_top_users(engine, GUILD, 10)

        assert [r.user_id for r in rows] == ["a"]

    def test_empty_guild(self, engine):
        assert ledger_service.get_top_users(engine, "empty", 10) == []

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit_rejected(self, engine, limit):
        with pytest.raises(ValueError):
            ledger_service.get_top_users(engine, GUILD, limit)


class TestRank:
    def test_rank_matches_leaderboard(self, engine):
        _give(engine, "a", "CHAT")
        _give(engine, "b", "CHAT")
        _give(engine, "c", "DAILY")

        assert ledger_service.get_user_rank(engine, GUILD, "c") == 1
        assert ledger_service.get_user_rank(engine, GUILD, "a") == 2
        assert ledger_service.get_user_rank(engine, GUILD, "b") == 3

    def test_unranked_user(self, engine):
        assert ledger_service.get_user_rank(engine, GUILD, "ghost") is None


class TestIntegerIds:
    def test_reads_accept_discord_int_ids(self, engine):
        award_event(engine, 100, 42, "DAILY")

        assert ledger_service.get_user_total(engine, 100, 42) == 85
        assert ledger_service.get_user_rank(engine, 100, 42) == 1
        assert [r.user_id for r in ledger_service.get_top_users(engine, 100, 5)] == ["42"]
        assert len(ledger_service.get_user_history(engine, 100, 42)) == 1


class TestCatalogReads:
    def test_get_event(self, engine):
        info = ledger_service.get_event(engine, "BOOST_SERVER")
        assert info.points == 3570
        assert info.max_occurrence == 1

    def test_get_unknown_event(self, engine):
        with pytest.raises(UnknownEvent):
            ledger_service.get_event(engine, "MISSING")

    def test_list_events_sorted_by_key(self, engine):
        keys = [e.key for e in ledger_service.list_events(engine)]
        assert keys == sorted(keys)
        assert "DAILY" in keys and "CHAT" in keys


class TestLedgerDerived:
    def test_history_oldest_first(self, engine):
        _give(engine, "1", "DAILY", "CHAT", "JOIN_SERVER")

        history = ledger_service.get_user_history(engine, GUILD, "1")

        assert [h["event_key"] for h in history] == ["DAILY", "CHAT", "JOIN_SERVER"]
        assert [h["points"] for h in history] == [85, 5, 213]

    def test_deleted_definition_counts_as_zero(self, engine, caplog):
        _give(engine, "1", "DAILY", "CHAT")
        with Session(engine) as session:
            chat = session.scalar(select(EventDefinition).where(EventDefinition.key == "CHAT"))
            session.delete(chat)
            session.commit()

        with Session(engine) as session:
            with caplog.at_level("WARNING"):
                total = ledger_service.compute_ledger_total(session, GUILD, "1")
            totals, dangling = ledger_service.compute_ledger_totals(session, GUILD)

        assert total == 85
        assert totals == {"1": 85}
        assert dangling == 1
        assert "missing" in caplog.text

        history = ledger_service.get_user_history(engine, GUILD, "1")
        assert history[1]["event_key"] is None
        assert history[1]["points"] == 0
