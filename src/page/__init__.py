"""Page capture: fetching HTML and exposing it to templates"""

from .fetcher import PageFetcher
from .snapshot import PageSnapshot

__all__ = ["PageFetcher", "PageSnapshot"]
