"""
tests/test_field_service.py — Field Workflows & Collaborator Guards
====================================================================

Collaborators are MagicMocks; the store is real.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from vriksha.engine.entities import HealthStatus, Location, WeatherData
from vriksha.errors import NotFoundError, ValidationError
from vriksha.services.collaborators import (
    ANALYSIS_FALLBACK,
    CAPTION_FALLBACK,
    FORECAST_FALLBACK,
    FORECAST_NO_DATA,
    AnalysisResult,
    AnalysisService,
    Forecast,
    ForecastDirection,
    GeoPoint,
    OfflineAnalysisService,
    guarded_analysis,
)
from vriksha.services.field_service import FieldService
from vriksha.services.weather import infer_soil, mock_weather


def _analysis(status="Needs Water", confidence=0.9, recommendation="Water today 💧"):
    service = MagicMock()
    service.analyze.return_value = AnalysisResult(status, confidence, recommendation)
    return service


# ---------------------------------------------------------------------------
# Weather & soil
# ---------------------------------------------------------------------------
class TestWeather:
    def test_mock_weather_is_deterministic_per_location(self):
        here = Location(12.97, 77.59)
        assert mock_weather(here) == mock_weather(Location(12.97, 77.59))

    def test_mock_weather_is_plausible(self):
        w = mock_weather(Location(28.61, 77.20))
        assert 18.0 <= w.temp <= 38.0
        assert 30.0 <= w.humidity <= 90.0
        assert w.rainfall >= 0

    @pytest.mark.parametrize(
        "rainfall, humidity, soil",
        [(12.0, 40.0, "Wet"), (3.0, 40.0, "Moist"), (0.0, 80.0, "Moist"), (0.0, 40.0, "Dry")],
    )
    def test_infer_soil(self, rainfall, humidity, soil):
        assert infer_soil(WeatherData(temp=30, humidity=humidity, rainfall=rainfall)) == soil


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------
class TestGuards:
    def test_offline_service_satisfies_protocol(self):
        assert isinstance(OfflineAnalysisService(), AnalysisService)

    def test_analysis_failure_uses_fallback(self, caplog):
        service = MagicMock()
        service.analyze.side_effect = TimeoutError("model timed out")
        weather = WeatherData(temp=30, humidity=50, rainfall=0)

        result = guarded_analysis(service, "img://1", weather, "Dry")

        assert result == ANALYSIS_FALLBACK
        assert "analysis unavailable" in caplog.text

    def test_out_of_range_confidence_uses_fallback(self):
        weather = WeatherData(temp=30, humidity=50, rainfall=0)
        result = guarded_analysis(_analysis(confidence=7.0), "img://1", weather, "Dry")
        assert result == ANALYSIS_FALLBACK

    @pytest.mark.parametrize(
        "result",
        [
            AnalysisResult("Healthy", None, "Water weekly"),
            AnalysisResult("Healthy", "0.8", "Water weekly"),
            AnalysisResult("Healthy", float("nan"), "Water weekly"),
            AnalysisResult(None, 0.8, "Water weekly"),
            AnalysisResult("Healthy", 0.8, None),
            {"status": "Healthy", "confidence": 0.8},
        ],
    )
    def test_malformed_analysis_uses_fallback(self, result, caplog):
        service = MagicMock()
        service.analyze.return_value = result
        weather = WeatherData(temp=30, humidity=50, rainfall=0)

        assert guarded_analysis(service, "img://1", weather, "Dry") == ANALYSIS_FALLBACK
        assert "analysis unavailable" in caplog.text

    def test_malformed_analysis_does_not_break_smart_update(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        service = MagicMock()
        service.analyze.return_value = AnalysisResult("Healthy", None, "x")

        result = FieldService(store, analysis=service).submit_update(
            sapling.id, alice.id, "img://2", status="Damaged",
        )

        assert result.update.status == HealthStatus.DAMAGED
        assert result.update.recommendation == ANALYSIS_FALLBACK.recommendation

    @pytest.mark.parametrize("caption", [None, 42, ["Nice"]])
    def test_non_text_caption_uses_fallback(self, caption, store):
        captioner = MagicMock()
        captioner.suggest_caption.return_value = caption
        assert FieldService(store, caption=captioner).suggest_caption("img://1") == CAPTION_FALLBACK

    def test_malformed_forecast_uses_fallback(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id)
        store.add_sapling_update(
            sapling.id, "Healthy", None, alice.id,
            weather=WeatherData(temp=30, humidity=50, rainfall=1),
        )
        forecaster = MagicMock()
        forecaster.forecast.return_value = None

        assert FieldService(store, forecast=forecaster).forecast_for(sapling.id) == FORECAST_FALLBACK

    def test_malformed_location_rejects_registration(self, community):
        store, alice, _, _ = community
        gps = MagicMock()
        gps.get_location.return_value = (10.0, 76.0)

        with pytest.raises(ValidationError):
            FieldService(store, geolocation=gps).register_sapling("Neem", alice.id)

    @pytest.mark.parametrize(
        "status, confidence, expected",
        [
            ("Damaged", 0.8, HealthStatus.DAMAGED),
            ("Thriving", 0.8, None),
            ("No Data", 0.8, None),
            ("Damaged", 0.0, None),
        ],
    )
    def test_suggested_status(self, status, confidence, expected):
        assert AnalysisResult(status, confidence, "").suggested_status() == expected


# ---------------------------------------------------------------------------
# Register flow
# ---------------------------------------------------------------------------
class TestRegister:
    def test_analysis_recommendation_is_stored(self, community, here):
        store, alice, _, _ = community
        analysis = _analysis(recommendation="Mulch the base 🌱")
        field = FieldService(store, analysis=analysis)

        sapling = field.register_sapling("Neem", alice.id, "img://1", here)

        assert sapling.updates[0].recommendation == "Mulch the base 🌱"
        assert sapling.updates[0].status == HealthStatus.HEALTHY
        _, weather, soil, previous = analysis.analyze.call_args.args
        assert weather == mock_weather(here)
        assert soil == infer_soil(weather)
        assert previous is None

    def test_analysis_failure_still_registers(self, community, here):
        store, alice, _, _ = community
        analysis = MagicMock()
        analysis.analyze.side_effect = ConnectionError("offline")
        field = FieldService(store, analysis=analysis)

        sapling = field.register_sapling("Neem", alice.id, "img://1", here)

        assert sapling.updates[0].recommendation == ANALYSIS_FALLBACK.recommendation

    def test_location_from_geolocation_provider(self, community):
        store, alice, _, _ = community
        gps = MagicMock()
        gps.get_location.return_value = GeoPoint(lat=10.0, lng=76.0, accuracy=12.0)
        field = FieldService(store, geolocation=gps)

        sapling = field.register_sapling("Neem", alice.id)

        assert sapling.location == Location(10.0, 76.0)

    def test_failed_geolocation_rejects_registration(self, community):
        store, alice, _, _ = community
        gps = MagicMock()
        gps.get_location.side_effect = PermissionError("denied")
        field = FieldService(store, geolocation=gps)

        with pytest.raises(ValidationError):
            field.register_sapling("Neem", alice.id)
        assert store.get_all_saplings() == []


# ---------------------------------------------------------------------------
# Smart update flow
# ---------------------------------------------------------------------------
class TestSmartUpdate:
    def test_ai_status_used_without_chosen_status(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        analysis = _analysis(status="Needs Water", confidence=0.9)
        field = FieldService(store, analysis=analysis)

        result = field.submit_update(sapling.id, alice.id, "img://2")

        assert result.status_source == "ai"
        assert result.update.status == HealthStatus.NEEDS_WATER
        assert result.update.confidence == 0.9
        assert result.update.weather == mock_weather(here)
        assert analysis.analyze.call_args.args[3] == "img://1"
        assert store.get_user(alice.id).points == 10

    def test_chosen_status_beats_confident_ai(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        field = FieldService(store, analysis=_analysis(status="Healthy", confidence=0.6))

        result = field.submit_update(sapling.id, alice.id, "img://2", status="Lost")

        assert result.status_source == "manual"
        assert result.update.status == HealthStatus.LOST
        # The AI's advice is still recorded alongside the volunteer's choice
        assert result.update.confidence == 0.6

    def test_invalid_ai_status_keeps_previous(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        field = FieldService(store, analysis=_analysis(status="Wilting"))

        result = field.submit_update(sapling.id, alice.id, "img://2")

        assert result.status_source == "previous"
        assert result.update.status == HealthStatus.HEALTHY

    def test_failed_ai_keeps_previous_status(self, community, here, clock):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        clock.advance(days=1)
        store.add_sapling_update(sapling.id, "Damaged", "img://2", alice.id)
        analysis = MagicMock()
        analysis.analyze.side_effect = RuntimeError("quota")
        field = FieldService(store, analysis=analysis)

        result = field.submit_update(sapling.id, alice.id, "img://3")

        assert result.status_source == "previous"
        assert result.update.status == HealthStatus.DAMAGED
        assert result.update.recommendation == ANALYSIS_FALLBACK.recommendation

    def test_unknown_sapling_never_calls_collaborators(self, community):
        store, alice, _, _ = community
        analysis = _analysis()
        field = FieldService(store, analysis=analysis)

        with pytest.raises(NotFoundError):
            field.submit_update("nope", alice.id, "img://1")
        analysis.analyze.assert_not_called()

    def test_no_lock_held_while_collaborator_runs(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        seen = {}

        def analyze(image, weather, soil, previous_image=None):
            # Reads inside the collaborator must not block
            seen["count"] = len(store.get_sapling(sapling.id).updates)
            return AnalysisResult("Healthy", 0.7, "ok")

        analysis = MagicMock()
        analysis.analyze.side_effect = analyze
        FieldService(store, analysis=analysis).submit_update(sapling.id, alice.id, "img://2")

        assert seen["count"] == 1

    def test_duplicate_submission_through_service(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        field = FieldService(store, analysis=_analysis())

        first = field.submit_update(sapling.id, alice.id, "img://2", submission_id="abc")
        again = field.submit_update(sapling.id, alice.id, "img://2", submission_id="abc")

        assert again.update == first.update
        assert store.get_user(alice.id).points == 10


# ---------------------------------------------------------------------------
# Forecast & caption
# ---------------------------------------------------------------------------
class TestForecastAndCaption:
    def test_forecast_without_weather(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id, image="img://1")
        assert FieldService(store).forecast_for(sapling.id) == FORECAST_NO_DATA

    def test_forecast_uses_latest_weather(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id)
        weather = WeatherData(temp=36, humidity=30, rainfall=0)
        store.add_sapling_update(sapling.id, "Needs Water", None, alice.id, weather=weather)
        forecaster = MagicMock()
        forecaster.forecast.return_value = Forecast(20, ForecastDirection.DECREASE, "Hot and dry")

        forecast = FieldService(store, forecast=forecaster).forecast_for(sapling.id)

        assert forecast.direction == ForecastDirection.DECREASE
        forecaster.forecast.assert_called_once_with(HealthStatus.NEEDS_WATER, weather)

    def test_forecast_failure_uses_fallback(self, community, here):
        store, alice, _, _ = community
        sapling = store.add_sapling("Neem", here, alice.id)
        store.add_sapling_update(
            sapling.id, "Healthy", None, alice.id,
            weather=WeatherData(temp=30, humidity=50, rainfall=1),
        )
        forecaster = MagicMock()
        forecaster.forecast.side_effect = ValueError("bad json")

        assert FieldService(store, forecast=forecaster).forecast_for(sapling.id) == FORECAST_FALLBACK

    def test_caption_fallbacks(self, store):
        captioner = MagicMock()
        captioner.suggest_caption.side_effect = RuntimeError("down")
        assert FieldService(store, caption=captioner).suggest_caption("img://1") == CAPTION_FALLBACK

        captioner = MagicMock()
        captioner.suggest_caption.return_value = "   "
        assert FieldService(store, caption=captioner).suggest_caption("img://1") == CAPTION_FALLBACK

    def test_offline_defaults(self, store):
        field = FieldService(store)
        assert field.suggest_caption("img://1") == CAPTION_FALLBACK
