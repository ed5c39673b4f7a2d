"""Persistence helpers for Media DB configuration."""

from .settings_store import SettingsStore

__all__ = ["SettingsStore"]
