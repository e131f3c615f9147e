"""Service layer — bulk updates returning ServiceResult.

Services may import from core, domain and infrastructure layers.
They must never import from config.
"""
