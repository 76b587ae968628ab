"""
EventHub Backend — Application Package Initializer
===================================================

What: Marks the `eventhub` directory as a Python package.
Who:  Imported by uvicorn (`eventhub.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered the same way for every resource collection:

    ┌─────────────────────────────────────┐
    │      Routes (router factory)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   ResourceService (query layer,     │  ← filter/sort/limit/project,
    │   lifecycle stamping)               │    createdAt/updatedAt/deletedAt
    ├─────────────────────────────────────┤
    │   Record model & schemas            │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database context                  │  ← Async engine + sessions
    └─────────────────────────────────────┘

    Six collections (events, recent, services, pricing, reviews, featured)
    are declared in `eventhub.resources`; none of them has its own module.
"""

__version__ = "1.0.0"
