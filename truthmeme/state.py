"""Centralised in-memory runtime state.

This keeps the singletons that are shared across the whole application so
other modules can simply import them without worrying about circular
imports. They live for the lifetime of the process; the connection
registry starts empty on every restart.
"""
from __future__ import annotations

from .coordinator import RoomCoordinator
from .registry import ConnectionRegistry
from .storage import TortoiseStorage

registry = ConnectionRegistry()
storage = TortoiseStorage()
coordinator = RoomCoordinator(storage, registry)

__all__ = ["registry", "storage", "coordinator"]
