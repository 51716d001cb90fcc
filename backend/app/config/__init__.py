"""Configuration package for the Finance Cloud service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
