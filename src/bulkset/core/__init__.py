"""Core pipeline — plan building, capability detection, composition, dispatch.

Core may import from domain and infrastructure.
It must never import from services or config.
"""
