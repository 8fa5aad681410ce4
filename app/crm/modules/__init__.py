"""
Feature modules live under this package.

Each module owns its routes/models/service, while reusing platform primitives
(DB session, key-value store, notification relay).
"""
