"""
Registration Service - payment review desk for tournament sign-ups

Responsibilities:
- Registration store (remote relational service or local SQLite file)
- Payment status lifecycle (pending -> verified / rejected)
- Evidence file cleanup when a registration is deleted
- Verification emails (optional)
- Forward-only schema migrations for the SQLite store
"""
