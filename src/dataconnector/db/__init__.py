from .engine import create_engine_from_settings

__all__ = ["create_engine_from_settings"]
