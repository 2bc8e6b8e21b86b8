"""Bounded in-process LRU for decorative slide backgrounds.

Keyed by (theme, aspectRatio, primary, accent): two slides that share these
values render the same background, so the collaborator that draws them only
does so once. The pipeline only reads from it.
"""

import threading
from collections import OrderedDict
from typing import Optional

from slidespec.agents.config import BACKGROUND_CACHE_SIZE
from slidespec.agents.core.interfaces import BackgroundKey, IBackgroundCache
from slidespec.models.slide_spec import SlideSpec


def background_key(spec: SlideSpec) -> Optional[BackgroundKey]:
    if spec.styleTokens is None:
        return None
    palette = spec.styleTokens.palette
    return (
        spec.meta.theme or "",
        spec.meta.aspectRatio or "",
        palette.primary.upper(),
        palette.accent.upper(),
    )


class LRUBackgroundCache(IBackgroundCache):
    def __init__(self, max_entries: int = BACKGROUND_CACHE_SIZE):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[BackgroundKey, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: BackgroundKey) -> Optional[str]:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def put(self, key: BackgroundKey, value: str) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
