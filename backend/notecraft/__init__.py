"""
NoteCraft Backend — Application Package Initializer
====================================================

What: Personal notes API gated behind a delegated identity/storage provider.
Who:  Imported by uvicorn (``notecraft.main:app``), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Middleware (Request ID, Logging,  │  ← Principal resolution per request
    │   Session)                          │
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Validation, ownership predicate
    ├─────────────────────────────────────┤
    │     Provider (Identity + Tables)    │  ← Request-scoped HTTP client
    └─────────────────────────────────────┘

    The ``client`` subpackage holds the browser-side half of the login flow:
    environment resolution, the provider session client, the OAuth callback
    reconciler, and a small API client for the endpoints above.
"""

__version__ = "1.0.0"
