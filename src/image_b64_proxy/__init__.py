"""
OpenAI-compatible proxy that inlines upstream image URLs as base64.
"""
from .config import load_config
from .server import create_app

__all__ = ["load_config", "create_app"]
