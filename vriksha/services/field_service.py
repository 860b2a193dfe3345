"""
vriksha.services.field_service — Registration & Smart Update Flows
===================================================================

Orchestrates the two field workflows a volunteer runs from the app:

1. **Register** — location (given or from the GPS provider) → mock
   weather + soil → AI analysis of the first photo → ``add_sapling``.
2. **Smart update** — mock weather + soil at the sapling → AI analysis
   comparing against the previous photo → status (the volunteer's
   explicit choice, else the AI's if it is valid and trusted, else the
   previous status) → ``add_sapling_update``.

Every collaborator call happens before the store is touched, so the
store lock is never held while a collaborator runs, and a failed or
abandoned call leaves the store unchanged.  Collaborator failures fall
back to neutral values (see :mod:`vriksha.services.collaborators`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vriksha.engine.analytics import current_status, latest_update
from vriksha.engine.entities import (
    HealthStatus,
    Location,
    Sapling,
    SaplingUpdate,
    WeatherData,
)
from vriksha.engine.store import EntityStore, coerce_status
from vriksha.services.collaborators import (
    AnalysisResult,
    AnalysisService,
    CaptionService,
    Forecast,
    ForecastService,
    GeolocationProvider,
    OfflineAnalysisService,
    OfflineCaptionService,
    OfflineForecastService,
    guarded_analysis,
    guarded_caption,
    guarded_forecast,
    guarded_location,
)
from vriksha.services.weather import infer_soil, mock_weather

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SmartUpdateResult:
    """What a smart update recorded, plus the analysis that informed it."""

    update: SaplingUpdate
    analysis: AnalysisResult | None
    status_source: str  # ai | manual | previous | default


class FieldService:
    """Field workflows over one :class:`EntityStore`.

    Collaborators default to the offline implementations.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        analysis: AnalysisService | None = None,
        forecast: ForecastService | None = None,
        caption: CaptionService | None = None,
        geolocation: GeolocationProvider | None = None,
    ) -> None:
        self.store = store
        self.analysis = analysis or OfflineAnalysisService()
        self.forecaster = forecast or OfflineForecastService()
        self.captioner = caption or OfflineCaptionService()
        self.geolocation = geolocation

    # -------------------------------------------------------------------
    # Conditions at a location
    # -------------------------------------------------------------------
    def conditions_at(self, location: Location) -> tuple[WeatherData, str]:
        weather = mock_weather(location)
        return weather, infer_soil(weather)

    # -------------------------------------------------------------------
    # Register
    # -------------------------------------------------------------------
    def register_sapling(
        self,
        species: str,
        guardian_id: str,
        image: str | None = None,
        location: Location | None = None,
    ) -> Sapling:
        """Register a sapling, analysing the first photo if one is given.

        Without an explicit *location* the geolocation provider is asked;
        if that fails too, the store rejects the registration with a
        ``ValidationError``.
        """
        if location is None and self.geolocation is not None:
            point = guarded_location(self.geolocation)
            location = point.to_location() if point is not None else None

        recommendation = None
        if image and location is not None:
            weather, soil = self.conditions_at(location)
            result = guarded_analysis(self.analysis, image, weather, soil)
            recommendation = result.recommendation

        return self.store.add_sapling(
            species, location, guardian_id, image=image, recommendation=recommendation,
        )

    # -------------------------------------------------------------------
    # Smart update
    # -------------------------------------------------------------------
    def submit_update(
        self,
        sapling_id: str,
        user_id: str,
        image: str | None,
        status: HealthStatus | str | None = None,
        *,
        submission_id: str | None = None,
    ) -> SmartUpdateResult:
        """Analyse *image* and append an update.

        Status precedence: the volunteer's explicit *status*, then the AI
        suggestion (valid, confidence > 0), then the sapling's previous
        status.  A sapling with none of these falls back to ``Healthy``.
        """
        sapling = self.store.get_sapling(sapling_id)
        manual = coerce_status(status) if status is not None else None
        previous = latest_update(sapling)

        weather, soil = self.conditions_at(sapling.location)
        analysis = None
        if image:
            analysis = guarded_analysis(
                self.analysis, image, weather, soil,
                previous.image_url if previous is not None else None,
            )

        suggested = analysis.suggested_status() if analysis is not None else None
        if manual is not None:
            chosen, source = manual, "manual"
        elif suggested is not None:
            chosen, source = suggested, "ai"
        elif previous is not None:
            chosen, source = previous.status, "previous"
        else:
            chosen, source = HealthStatus.HEALTHY, "default"

        update = self.store.add_sapling_update(
            sapling_id,
            chosen,
            image,
            user_id,
            recommendation=analysis.recommendation if analysis is not None else None,
            confidence=analysis.confidence if analysis is not None else None,
            weather=weather,
            soil=soil,
            submission_id=submission_id,
        )
        logger.debug("Smart update %s status=%s (from %s)", update.id, chosen, source)
        return SmartUpdateResult(update=update, analysis=analysis, status_source=source)

    # -------------------------------------------------------------------
    # Forecast & captions (read-only)
    # -------------------------------------------------------------------
    def forecast_for(self, sapling_id: str) -> Forecast:
        """7-day health forecast from the latest update's weather."""
        sapling = self.store.get_sapling(sapling_id)
        last = latest_update(sapling)
        weather = last.weather if last is not None else None
        return guarded_forecast(self.forecaster, current_status(sapling), weather)

    def suggest_caption(self, image: str) -> str:
        return guarded_caption(self.captioner, image)
