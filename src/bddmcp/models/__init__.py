"""Data models shared across the engine."""
from .config_models import EngineConfig

__all__ = ["EngineConfig"]
