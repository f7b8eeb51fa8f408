"""
Feature modules live under this package.

Each module owns its routes and models, and reuses platform primitives
(auth, token checks, storage, DB session, error taxonomy).
"""
