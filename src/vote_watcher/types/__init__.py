"""Base types shared across the watcher."""

from .base import CamelModel, RpcModel, StrictBaseModel

__all__ = [
    "CamelModel",
    "RpcModel",
    "StrictBaseModel",
]
