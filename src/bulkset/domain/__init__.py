"""Domain layer — request/plan value types and value coercion.

This layer depends only on stdlib and :mod:`bulkset.errors`.
It must never import from core, infrastructure, services, or config.
"""
