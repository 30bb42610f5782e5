"""Watcher orchestrator."""

from .node import Watcher

__all__ = ["Watcher"]
