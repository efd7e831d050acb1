"""Concrete adapters for the interfaces in ``smartlens.interfaces``."""
