"""Dependency injection."""

from passerelle.di.container import DIContainer
from passerelle.di.dependencies import get_container

__all__ = ["DIContainer", "get_container"]
