"""
vriksha.services.weather — Mock Weather & Soil Inference
=========================================================

There is no live weather feed.  :func:`mock_weather` returns plausible,
deterministic readings for a location (same coordinates, same reading),
seeded from the coordinates rounded to ~1 km.  :func:`infer_soil`
classifies the soil from a reading.
"""

from __future__ import annotations

import random

from vriksha.engine.entities import Location, WeatherData

SOIL_WET = "Wet"
SOIL_MOIST = "Moist"
SOIL_DRY = "Dry"

WET_RAINFALL_MM = 10.0
MOIST_RAINFALL_MM = 2.0
MOIST_HUMIDITY_PCT = 70.0


def mock_weather(location: Location) -> WeatherData:
    rng = random.Random(f"{location.lat:.2f},{location.lng:.2f}")
    # A third of locations had no rain in the last 24h
    rainfall = 0.0 if rng.random() < 1 / 3 else round(rng.uniform(0.5, 25.0), 1)
    return WeatherData(
        temp=round(rng.uniform(18.0, 38.0), 1),
        humidity=round(rng.uniform(30.0, 90.0), 1),
        rainfall=rainfall,
    )


def infer_soil(weather: WeatherData) -> str:
    """``Wet`` after heavy rain, ``Moist`` after light rain or in humid air, else ``Dry``."""
    if weather.rainfall >= WET_RAINFALL_MM:
        return SOIL_WET
    if weather.rainfall >= MOIST_RAINFALL_MM or weather.humidity >= MOIST_HUMIDITY_PCT:
        return SOIL_MOIST
    return SOIL_DRY
