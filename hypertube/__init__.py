"""
Hypertube API — Application Package Initializer
================================================

What: Marks the `hypertube` directory as a Python package.
Why:  Enables module imports like `from hypertube.config import Settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    Every request crosses the same pipeline before a handler sees it:

    ┌─────────────────────────────────────┐
    │  Middleware (security, body, valid.,│  ← ordered, per request
    │  session/identity)                  │
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← lookups, redaction, envelopes
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Shared resources (engine, stores, upload stager) live in one AppContext
    built by create_app() and handed to middleware and routes explicitly.
"""

__version__ = "1.0.0"
