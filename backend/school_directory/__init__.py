"""
School Directory Backend — Application Package Initializer
==========================================================

What: Marks the `school_directory` directory as a Python package.
Who:  Imported by uvicorn, Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← multipart parsing, status codes
    ├─────────────────────────────────────┤
    │   Services (Upsert Workflow)        │  ← blob + record orchestration
    ├─────────────────────────────────────┤
    │  Blob Stores  │  Models & Schemas   │  ← local disk / S3, ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch storage or SQL directly; the SchoolService owns the
    ordering of side effects across the Blob Store and the Record Store.
"""

__version__ = "1.0.0"
