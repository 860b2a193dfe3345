"""
vriksha.api.routes.saplings — Sapling registry, updates & forecasts
====================================================================

Routes that wait on collaborators (registration, smart update) are
``async`` and push the work to a thread with :func:`run_db`.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from vriksha.api.deps import get_field_service, get_store
from vriksha.api.serializers import sapling_dict, update_dict
from vriksha.database.engine import run_db
from vriksha.engine.analytics import filter_saplings, map_markers
from vriksha.engine.entities import Location, WeatherData
from vriksha.engine.store import EntityStore
from vriksha.services.field_service import FieldService

router = APIRouter(prefix="/saplings", tags=["saplings"])

StoreDep = Annotated[EntityStore, Depends(get_store)]
FieldDep = Annotated[FieldService, Depends(get_field_service)]


class LocationIn(BaseModel):
    lat: float
    lng: float


class WeatherIn(BaseModel):
    temp: float
    humidity: float
    rainfall: float


class SaplingCreate(BaseModel):
    species: str
    guardian_id: str
    image: str | None = None
    location: LocationIn | None = None


class UpdateCreate(BaseModel):
    user_id: str
    status: str
    image: str | None = None
    recommendation: str | None = None
    confidence: float | None = None
    weather: WeatherIn | None = None
    soil_condition: str | None = None
    submission_id: str | None = None


class SmartUpdateCreate(BaseModel):
    user_id: str
    image: str | None = None
    status: str | None = Field(
        default=None,
        description="Volunteer's chosen status; the AI suggestion is used only when omitted",
    )
    submission_id: str | None = None


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------
@router.get("")
def list_saplings(
    store: StoreDep,
    lost_only: bool = Query(False),
    search: str | None = Query(None),
):
    saplings = filter_saplings(
        store.get_all_saplings(), store.get_all_users(),
        lost_only=lost_only, search=search,
    )
    return [sapling_dict(s, with_updates=False) for s in saplings]


@router.get("/markers")
def list_markers(store: StoreDep):
    return [
        {
            "id": m.sapling_id,
            "species": m.species,
            "lat": m.lat,
            "lng": m.lng,
            "status": str(m.status),
        }
        for m in map_markers(store.get_all_saplings())
    ]


@router.get("/{sapling_id}")
def get_sapling(sapling_id: str, store: StoreDep):
    return sapling_dict(store.get_sapling(sapling_id))


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def register_sapling(body: SaplingCreate, field: FieldDep):
    location = Location(body.location.lat, body.location.lng) if body.location else None
    sapling = await run_db(
        field.register_sapling, body.species, body.guardian_id, body.image, location,
    )
    return sapling_dict(sapling)


@router.post("/{sapling_id}/updates", status_code=status.HTTP_201_CREATED)
def add_update(sapling_id: str, body: UpdateCreate, store: StoreDep):
    """Record a manual observation (no AI involved)."""
    weather = WeatherData(**body.weather.model_dump()) if body.weather else None
    update = store.add_sapling_update(
        sapling_id,
        body.status,
        body.image,
        body.user_id,
        recommendation=body.recommendation,
        confidence=body.confidence,
        weather=weather,
        soil=body.soil_condition,
        submission_id=body.submission_id,
    )
    return update_dict(update)


@router.post("/{sapling_id}/smart-update", status_code=status.HTTP_201_CREATED)
async def smart_update(sapling_id: str, body: SmartUpdateCreate, field: FieldDep):
    result = await run_db(
        field.submit_update,
        sapling_id,
        body.user_id,
        body.image,
        body.status,
        submission_id=body.submission_id,
    )
    return {
        "update": update_dict(result.update),
        "status_source": result.status_source,
    }


@router.delete("/{sapling_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sapling(sapling_id: str, store: StoreDep):
    store.delete_sapling(sapling_id)


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------
@router.get("/{sapling_id}/forecast")
async def get_forecast(sapling_id: str, field: FieldDep):
    forecast = await run_db(field.forecast_for, sapling_id)
    return {
        "percentage": forecast.percentage,
        "direction": str(forecast.direction),
        "explanation": forecast.explanation,
    }
