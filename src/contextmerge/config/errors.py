"""Errors raised while reading engine settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is present but unusable (bad number, flag or level name)."""
