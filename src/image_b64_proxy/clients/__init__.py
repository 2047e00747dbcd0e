"""
Client adapters for the upstream generation API and the image hosts it points to.
"""
from .image_fetcher import ImageFetcher
from .upstream import UpstreamClient

__all__ = ["ImageFetcher", "UpstreamClient"]
