"""
Questline — Mission & Reward Engine for Merchant Gamification
==============================================================
Turns tracked merchant actions into progress: events complete tasks, tasks
roll up into missions, completed missions grant rewards and feed a
leaderboard.  Everything is driven by a single ``POST /api/events`` call.

Package layout::

    questline/
    ├── config.py          # YAML → typed Python config
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   ├── models.py      # All ORM models (13 tables)
    │   └── seed.py        # Default settings + reward types
    ├── engine/
    │   ├── events.py      # EventPayload dataclass + payload normalization
    │   ├── progress.py    # Mission rollup math
    │   ├── targeting.py   # Window / audience / prerequisite checks
    │   └── rewards.py     # Reward expiry rules
    ├── repository/        # One repository per aggregate over a Session
    ├── services/
    │   ├── event_processor.py      # Event → task → mission → reward cascade
    │   ├── progress_service.py     # Shared completion + rollup helpers
    │   ├── mission_service.py      # Mission listing, detail, availability
    │   ├── task_service.py         # Task listing, skip, explicit complete
    │   ├── reward_service.py       # Grant, claim, expire
    │   ├── leaderboard_service.py  # Aggregates, ranking, context
    │   ├── player_service.py       # Player CRUD + summary
    │   └── settings_service.py     # Runtime switches in the settings table
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine / config / admin JWT dependencies
        └── routes/        # Events, missions, tasks, rewards, leaderboard, ...
"""

__version__ = "0.1.0"
