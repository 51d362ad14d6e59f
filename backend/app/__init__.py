"""
Project Gallery Backend — Application Package
===============================================

Layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP parsing, status codes
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← projects, gallery reconciliation,
    │                                     │    upload receiving, login
    ├─────────────────────────────────────┤
    │   Storage backends                  │  ← filesystem directory or inline bytes
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
