"""
Quotebook Backend — Package Initializer
=======================================

What: Marks the `quotebook` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn quotebook.main:app`), pytest, and the services.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Auth / Quote / Preferences        │  ← Validation, orchestration
    │   Services                          │
    ├─────────────────────────────────────┤
    │   Backend Gateway │ Session Store   │  ← Remote REST API │ local state
    ├─────────────────────────────────────┤
    │          Preference Store           │  ← Key-value persistence
    └─────────────────────────────────────┘

    All domain data lives in the remote backend (Supabase REST + auth).
    This package only orchestrates calls and keeps the signed-in session.
"""

__version__ = "1.0.0"
