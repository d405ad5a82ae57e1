"""
Bug Tracker Backend: Application Package
==========================================

What: Marks the `bugtracker` directory as a Python package.
Who:  Imported by uvicorn (`bugtracker.main:app`), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │        Routes (HTTP surface)        │  ← auth, params, status codes
    ├─────────────────────────────────────┤
    │   Services (query / mutation / AI)  │  ← filters, pagination, tagging
    ├─────────────────────────────────────┤
    │      Models & Schemas (data)        │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │      Database (async sessions)      │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
