"""
Vriksha — Community Sapling Tracker
====================================
Tracks planted saplings and their guardians, turns periodic field
observations (photo, health status, weather) into eco points, and
derives rankings, levels, badges, alerts and survival analytics from an
append-only history.

Package layout::

    vriksha/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Scores, rewards, bins, labels
    ├── errors.py          # ValidationError / NotFoundError / ExternalServiceError
    ├── engine/
    │   ├── entities.py    # Frozen dataclasses + enums
    │   ├── broadcaster.py # Change observers + batching
    │   ├── store.py       # EntityStore: all mutations and reads
    │   ├── analytics.py   # Current status, distribution, trend, rainfall
    │   ├── leaderboard.py # Rank, level, badges
    │   └── notifications.py # Derived alerts + per-session dismissal
    ├── services/
    │   ├── collaborators.py # AI / GPS contracts, fallbacks, guards
    │   ├── weather.py     # Mock weather + soil inference
    │   ├── field_service.py # Register & smart-update flows
    │   └── seed.py        # YAML demo data
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # Snapshot tables
    │   └── snapshot.py    # save / load a StoreSnapshot
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Shared dependencies
        └── routes/        # users, saplings, social, insights, snapshot
"""

__version__ = "0.1.0"
