"""
tests/test_snapshot.py — Snapshot Persistence Tests
====================================================

Round-trips a populated store through the in-memory SQLite database.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, date

from vriksha.database.engine import create_db_engine, run_db
from vriksha.database.snapshot import load_snapshot, save_snapshot
from vriksha.engine.analytics import current_status
from vriksha.engine.entities import HealthStatus, StoreSnapshot, WeatherData
from vriksha.engine.leaderboard import rank_users
from vriksha.engine.store import EntityStore


def _populate(community, here, clock):
    store, alice, bob, _ = community
    sapling = store.add_sapling("Neem", here, alice.id, image="img://1", recommendation="Water weekly")
    clock.advance(days=1)
    store.add_sapling_update(
        sapling.id, HealthStatus.NEEDS_WATER, "img://2", bob.id,
        confidence=0.7, weather=WeatherData(temp=31.0, humidity=40.0, rainfall=0.0),
        soil="Dry", submission_id="sub-1",
    )
    store.add_sapling("Banyan", here, bob.id)
    post = store.create_social_post(alice.id, "Leaves!", sapling_id=sapling.id)
    store.toggle_like(post.id, bob.id)
    store.toggle_like(post.id, alice.id)
    store.add_comment(post.id, bob.id, "Lovely")
    store.add_challenge("Mulch", "Mulch your sapling", 50, date(2025, 6, 30))
    return store


class TestSnapshotRoundTrip:
    def test_save_then_load_is_identity(self, community, here, clock, db_engine):
        store = _populate(community, here, clock)
        original = store.snapshot()

        save_snapshot(db_engine, original)
        restored = load_snapshot(db_engine)

        assert restored == original

    def test_timestamps_come_back_as_utc(self, community, here, clock, db_engine):
        store = _populate(community, here, clock)
        save_snapshot(db_engine, store.snapshot())

        restored = load_snapshot(db_engine)

        for sapling in restored.saplings:
            assert sapling.planted_at.tzinfo is UTC
            assert all(u.timestamp.tzinfo is UTC for u in sapling.updates)

    def test_derived_values_are_recomputed_after_restore(self, community, here, clock, db_engine):
        store = _populate(community, here, clock)
        save_snapshot(db_engine, store.snapshot())

        fresh = EntityStore(clock=clock)
        fresh.load_snapshot(load_snapshot(db_engine))

        statuses = {s.species: current_status(s) for s in fresh.get_all_saplings()}
        assert statuses == {"Neem": HealthStatus.NEEDS_WATER, "Banyan": HealthStatus.NO_DATA}
        assert rank_users(fresh.get_all_users()) == rank_users(store.get_all_users())

    def test_save_replaces_previous_snapshot(self, community, here, clock, db_engine):
        store = _populate(community, here, clock)
        save_snapshot(db_engine, store.snapshot())

        save_snapshot(db_engine, StoreSnapshot())

        assert load_snapshot(db_engine) == StoreSnapshot()

    def test_empty_database_loads_empty_snapshot(self, db_engine):
        assert load_snapshot(db_engine) == StoreSnapshot()


class TestEngineHelpers:
    def test_sqlite_url_override(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'v.db'}")
        assert engine.url.get_backend_name() == "sqlite"

    def test_run_db_runs_sync_function(self, db_engine):
        result = asyncio.run(run_db(load_snapshot, db_engine))
        assert result == StoreSnapshot()
