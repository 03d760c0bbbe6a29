"""Component store backends."""

from solution_reaper.store.base import ComponentStore
from solution_reaper.store.web_api import WebApiStore

__all__ = ["ComponentStore", "WebApiStore"]
