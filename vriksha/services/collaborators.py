"""
vriksha.services.collaborators — External Collaborator Contracts
=================================================================

The AI analysis, forecast and caption services and the geolocation
provider are opaque collaborators.  This module defines:

- ``Protocol`` contracts the field service depends on
- result types (:class:`AnalysisResult`, :class:`Forecast`, :class:`GeoPoint`)
- offline implementations used when no real backend is wired in
- ``guarded_*`` helpers that turn any collaborator failure into a logged
  :class:`~vriksha.errors.ExternalServiceError` and return the fallback

A collaborator failure is never fatal: the guarded helpers always return
a usable value, and the caller carries on with its store mutation.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from vriksha.engine.entities import HealthStatus, Location, WeatherData
from vriksha.errors import ExternalServiceError

logger = logging.getLogger(__name__)

__all__ = [
    "ANALYSIS_FALLBACK",
    "CAPTION_FALLBACK",
    "FORECAST_FALLBACK",
    "FORECAST_NO_DATA",
    "AnalysisResult",
    "AnalysisService",
    "CaptionService",
    "Forecast",
    "ForecastDirection",
    "ForecastService",
    "GeoPoint",
    "GeolocationProvider",
    "OfflineAnalysisService",
    "OfflineCaptionService",
    "OfflineForecastService",
    "guarded_analysis",
    "guarded_caption",
    "guarded_forecast",
    "guarded_location",
]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Output of an image analysis.

    ``status`` is the raw label the service returned.  It is only applied
    to an update when :meth:`suggested_status` recognises it.
    """

    status: str
    confidence: float
    recommendation: str

    def suggested_status(self) -> HealthStatus | None:
        """The status as an observable :class:`HealthStatus`, if valid and trusted."""
        if self.confidence <= 0:
            return None
        for status in HealthStatus:
            if status != HealthStatus.NO_DATA and self.status == status.value:
                return status
        return None


class ForecastDirection(enum.StrEnum):
    INCREASE = "increase"
    DECREASE = "decrease"


@dataclass(frozen=True, slots=True)
class Forecast:
    """Predicted 7-day health change."""

    percentage: float
    direction: ForecastDirection
    explanation: str


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lng: float
    accuracy: float | None = None  # metres

    def to_location(self) -> Location:
        return Location(lat=self.lat, lng=self.lng)


# ---------------------------------------------------------------------------
# Fallback values
# ---------------------------------------------------------------------------
ANALYSIS_FALLBACK = AnalysisResult(
    status=HealthStatus.HEALTHY.value,
    confidence=0.0,
    recommendation="AI analysis failed. Please assess manually.",
)

FORECAST_FALLBACK = Forecast(
    percentage=0.0,
    direction=ForecastDirection.INCREASE,
    explanation="Could not generate an AI forecast at this time.",
)

FORECAST_NO_DATA = Forecast(
    percentage=0.0,
    direction=ForecastDirection.INCREASE,
    explanation="Not enough data for a forecast.",
)

CAPTION_FALLBACK = "Enjoying a beautiful day with my sapling! \U0001f33f"


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------
@runtime_checkable
class AnalysisService(Protocol):
    def analyze(
        self,
        image: str,
        weather: WeatherData,
        soil: str,
        previous_image: str | None = None,
    ) -> AnalysisResult: ...


@runtime_checkable
class ForecastService(Protocol):
    def forecast(self, current_status: HealthStatus, weather: WeatherData) -> Forecast: ...


@runtime_checkable
class CaptionService(Protocol):
    def suggest_caption(self, image: str) -> str: ...


@runtime_checkable
class GeolocationProvider(Protocol):
    def get_location(self) -> GeoPoint: ...


# ---------------------------------------------------------------------------
# Offline implementations
# ---------------------------------------------------------------------------
class OfflineAnalysisService:
    """Stand-in when no AI backend is configured.

    Never claims a status (confidence 0); gives a soil-based watering
    hint instead.
    """

    def analyze(
        self,
        image: str,
        weather: WeatherData,
        soil: str,
        previous_image: str | None = None,
    ) -> AnalysisResult:
        if soil == "Dry":
            hint = "Soil looks dry. Water the sapling today. \U0001f4a7"
        elif soil == "Wet":
            hint = "Soil is wet. Skip watering and check drainage. \U0001f331"
        else:
            hint = "Soil moisture looks fine. Keep up the regular care. \U0001f33f"
        return AnalysisResult(
            status=HealthStatus.HEALTHY.value, confidence=0.0, recommendation=hint,
        )


class OfflineForecastService:
    def forecast(self, current_status: HealthStatus, weather: WeatherData) -> Forecast:
        return FORECAST_FALLBACK


class OfflineCaptionService:
    def suggest_caption(self, image: str) -> str:
        return CAPTION_FALLBACK


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------
def _degraded(service: str, exc: Exception) -> ExternalServiceError:
    err = ExternalServiceError(service, str(exc) or type(exc).__name__)
    logger.warning("%s — using fallback", err.message)
    return err


def _analysis_problem(result: object) -> str | None:
    """Describe what is wrong with an analysis result, or ``None`` if it is usable."""
    if not isinstance(result, AnalysisResult):
        return f"unexpected result type {type(result).__name__}"
    if not isinstance(result.status, str) or not isinstance(result.recommendation, str):
        return "status and recommendation must be text"
    confidence = result.confidence
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return f"confidence is not a number: {confidence!r}"
    if not 0.0 <= confidence <= 1.0:
        return f"confidence out of range: {confidence}"
    return None


def guarded_analysis(
    service: AnalysisService,
    image: str,
    weather: WeatherData,
    soil: str,
    previous_image: str | None = None,
) -> AnalysisResult:
    try:
        result = service.analyze(image, weather, soil, previous_image)
    except Exception as exc:
        _degraded("analysis", exc)
        return ANALYSIS_FALLBACK
    problem = _analysis_problem(result)
    if problem is not None:
        _degraded("analysis", ValueError(problem))
        return ANALYSIS_FALLBACK
    return result


def guarded_forecast(
    service: ForecastService,
    current_status: HealthStatus,
    weather: WeatherData | None,
) -> Forecast:
    if weather is None:
        return FORECAST_NO_DATA
    try:
        forecast = service.forecast(current_status, weather)
    except Exception as exc:
        _degraded("forecast", exc)
        return FORECAST_FALLBACK
    if not isinstance(forecast, Forecast):
        _degraded("forecast", TypeError(f"unexpected result type {type(forecast).__name__}"))
        return FORECAST_FALLBACK
    return forecast


def guarded_caption(service: CaptionService, image: str) -> str:
    try:
        caption = service.suggest_caption(image)
    except Exception as exc:
        _degraded("caption", exc)
        return CAPTION_FALLBACK
    if not isinstance(caption, str):
        _degraded("caption", TypeError(f"caption is not text: {caption!r}"))
        return CAPTION_FALLBACK
    return caption.strip() or CAPTION_FALLBACK


def guarded_location(provider: GeolocationProvider) -> GeoPoint | None:
    """There is no neutral location to fall back on, so a failed lookup
    yields ``None`` and the registration is rejected for lack of a location.
    """
    try:
        point = provider.get_location()
    except Exception as exc:
        _degraded("geolocation", exc)
        return None
    if not isinstance(point, GeoPoint):
        _degraded("geolocation", TypeError(f"unexpected result type {type(point).__name__}"))
        return None
    return point
