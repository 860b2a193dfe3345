"""
tests/test_config_seed.py — Config Loader & Demo Seeder Tests
==============================================================
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from vriksha.config import VrikshaConfig, load_config
from vriksha.engine.analytics import current_status
from vriksha.engine.entities import HealthStatus, Role
from vriksha.engine.leaderboard import rank_users
from vriksha.errors import ValidationError
from vriksha.services.seed import (
    DEFAULT_SEED_FILE,
    build_snapshot,
    load_seed_file,
    resolve_seed_path,
    seed_store,
)


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
class TestLoadConfig:
    def test_missing_file_has_hint(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == VrikshaConfig()

    def test_values_are_read(self, tmp_path):
        path = _write(tmp_path, {
            "community_name": "Green Bengaluru",
            "points_per_update": 15,
            "level_thresholds": {"hero": 400},
            "log_level": "debug",
        })
        cfg = load_config(path)

        assert cfg.community_name == "Green Bengaluru"
        assert cfg.points_per_update == 15
        assert cfg.level_thresholds == {"guardian": 100, "hero": 400}
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "data",
        [
            {"points_per_update": -1},
            {"trend_window": 0},
            {"level_thresholds": {"guardian": 300, "hero": 200}},
        ],
    )
    def test_invalid_values_rejected(self, tmp_path, data):
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, data))

    def test_example_config_is_valid(self):
        example = Path(__file__).resolve().parent.parent / "config.yaml.example"
        cfg = load_config(example)
        assert cfg.seed_file == "seeds/demo.yaml"


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------
class TestSeed:
    def test_missing_seed_file_is_empty(self, tmp_path):
        assert load_seed_file(tmp_path / "missing.yaml") == {}

    def test_relative_seed_path_ignores_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert resolve_seed_path("seeds/demo.yaml") == DEFAULT_SEED_FILE
        assert load_seed_file("seeds/demo.yaml")["users"]

    def test_absolute_seed_path_is_kept(self, tmp_path):
        assert resolve_seed_path(tmp_path / "x.yaml") == tmp_path / "x.yaml"

    def test_demo_seed_loads_into_store(self, store):
        snap = seed_store(store, DEFAULT_SEED_FILE)

        assert len(store.get_all_users()) == len(snap.users) > 0
        assert any(u.role == Role.ADMIN for u in store.get_all_users())
        ranked = rank_users(store.get_all_users())
        assert ranked[0].points == max(u.points for u in snap.users if u.role == Role.VOLUNTEER)

    def test_relative_dates_anchor_at_store_clock(self, store, clock):
        data = {
            "users": [{"id": "u1", "name": "Asha"}],
            "challenges": [{"id": "c1", "title": "Drive", "ends_in_days": 3}],
            "saplings": [{
                "id": "s1", "species": "Neem", "lat": 12.9, "lng": 77.6, "guardian": "u1",
                "planted_days_ago": 10,
                "updates": [
                    {"status": "Needs Water", "days_ago": 2, "rainfall": 0},
                    {"status": "Healthy", "days_ago": 10, "rainfall": 4},
                ],
            }],
        }
        snap = build_snapshot(data, now=clock.now)
        sapling = snap.saplings[0]

        assert snap.challenges[0].end_date == (clock.now + timedelta(days=3)).date()
        # Updates are re-ordered oldest first
        assert [u.status for u in sapling.updates] == [HealthStatus.HEALTHY, HealthStatus.NEEDS_WATER]
        assert current_status(sapling) == HealthStatus.NEEDS_WATER
        assert sapling.updates[0].weather.rainfall == 4

    def test_bad_status_in_fixture_rejected(self, clock):
        data = {"saplings": [{
            "id": "s1", "species": "Neem", "lat": 0, "lng": 0, "guardian": "u1",
            "updates": [{"status": "Sparkling"}],
        }]}
        with pytest.raises(ValidationError):
            build_snapshot(data, now=clock.now)

    def test_seed_notifies_once(self, store):
        observer = MagicMock()
        store.subscribe(observer)
        seed_store(store, DEFAULT_SEED_FILE)
        observer.assert_called_once()
