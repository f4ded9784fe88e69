"""Persistence helpers for codeindex."""

from .unit_store import UnitStore, collision_safe_filename

__all__ = ["UnitStore", "collision_safe_filename"]
