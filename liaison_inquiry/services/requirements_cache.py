"""Time-bounded cache for form requirements responses"""
import hashlib
import logging
import time
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

from liaison_inquiry.config import get_settings
from liaison_inquiry.models.forms import FormDefinition

logger = logging.getLogger(__name__)


class RequirementsCache:
    """
    Keyed by (api_key, form_id). Entries are never mutated after being
    stored, so concurrent renders can at worst fetch the same form twice.
    """

    def __init__(self, ttl: float = 900, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, FormDefinition]] = {}

    @staticmethod
    def make_key(api_key: str, form_id: Optional[str]) -> str:
        # Hash so raw API keys are not kept around as dict keys
        raw = f"{api_key}_{form_id or 'default'}"
        return "liaison_form_req_" + hashlib.md5(raw.encode("utf-8")).hexdigest()

    def get(self, api_key: str, form_id: Optional[str]) -> Optional[FormDefinition]:
        key = self.make_key(api_key, form_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, form = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return form

    def set(self, api_key: str, form_id: Optional[str], form: FormDefinition) -> None:
        key = self.make_key(api_key, form_id)
        self._entries[key] = (self._clock() + self.ttl, form)

    def prune(self) -> int:
        """Drop expired entries, returning how many were removed"""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.info(f"Pruned {len(expired)} expired form requirement entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache()
def get_requirements_cache() -> RequirementsCache:
    """Process-wide cache shared by all requests"""
    return RequirementsCache(ttl=get_settings().requirements_cache_ttl)
