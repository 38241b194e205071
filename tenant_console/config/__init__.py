"""Configuration module for the tenant console."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
