"""
TripShare Backend — Application Package Initializer
=====================================================

What: Marks the `tripshare` directory as a Python package.
Why:  Enables module imports like `from tripshare.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The community backend follows the same layered layout as the rest of
    the trip planner:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Coordinator & Stores)   │  ← Toggle state machine, queries
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The like toggle is the one place where two tables change together.
    ToggleCoordinator owns that unit; nothing else writes the counter.
"""

__version__ = "1.0.0"
