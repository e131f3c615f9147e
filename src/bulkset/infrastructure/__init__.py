"""Infrastructure layer — SQLAlchemy schema lookup, setter builders, backends.

This layer depends on stdlib, SQLAlchemy and the domain layer.
It must never import from core, services, or config.
"""
