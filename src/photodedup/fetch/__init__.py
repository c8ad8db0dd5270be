"""Image retrieval over HTTP with a bounded retry budget."""

from .fetcher import ImageFetcher, FetchFailed, make_session

__all__ = [
    "ImageFetcher",
    "FetchFailed",
    "make_session",
]
