"""
Scan session state.

A single aggregate transitioned only by discrete events from the main loop:
decodes, manual lookup requests and lookup completions. Lookups are stamped
with a generation number; a completion whose generation is no longer the
latest one issued is dropped (latest-wins).
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .errors import LookupNotFound, PartLookupError
from .events import ScanEvent
from .extractor import extract_token
from .lookup import PartRecord

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 5


class LookupStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in-flight"
    RESOLVED = "resolved"
    NOT_FOUND = "not-found"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupRequest:
    generation: int
    token: str


class ScanSession:
    def __init__(
        self,
        capacity: int = HISTORY_CAPACITY,
        extractor: Callable[[str], str] = extract_token,
    ):
        self._history: deque = deque(maxlen=capacity)
        self._extractor = extractor
        self._generation = 0
        self.latest: Optional[ScanEvent] = None
        self.token: Optional[str] = None
        self.status = LookupStatus.IDLE
        self.record: Optional[PartRecord] = None
        self.error: Optional[PartLookupError] = None

    @property
    def history(self) -> List[ScanEvent]:
        """Most recent scan first."""
        return list(self._history)

    @property
    def reason(self) -> Optional[str]:
        if self.status in (LookupStatus.NOT_FOUND, LookupStatus.FAILED) and self.error:
            return self.error.message
        return None

    def on_decoded(
        self, raw_text: str, timestamp: Optional[float] = None
    ) -> Optional[LookupRequest]:
        if not raw_text.strip():
            return None
        if self.latest is not None and self.latest.raw_text == raw_text:
            return None
        scan = ScanEvent(
            raw_text=raw_text, timestamp=time.time() if timestamp is None else timestamp
        )
        self.latest = scan
        self._history.appendleft(scan)
        return self._issue(self._extractor(raw_text))

    def on_manual_lookup(self, token: Optional[str] = None) -> Optional[LookupRequest]:
        token = (token or self.token or "").strip()
        if not token:
            return None
        return self._issue(token)

    def on_lookup_succeeded(self, request: LookupRequest, record: PartRecord) -> bool:
        if not self._is_latest(request):
            return False
        self.status = LookupStatus.RESOLVED
        self.record = record
        self.error = None
        return True

    def on_lookup_failed(self, request: LookupRequest, error: PartLookupError) -> bool:
        if not self._is_latest(request):
            return False
        self.status = (
            LookupStatus.NOT_FOUND
            if isinstance(error, LookupNotFound)
            else LookupStatus.FAILED
        )
        self.record = None
        self.error = error
        return True

    def _issue(self, token: str) -> LookupRequest:
        self._generation += 1
        self.token = token
        self.status = LookupStatus.IN_FLIGHT
        self.record = None
        self.error = None
        logger.debug("Lookup %d issued for %r", self._generation, token)
        return LookupRequest(generation=self._generation, token=token)

    def _is_latest(self, request: LookupRequest) -> bool:
        if request.generation != self._generation:
            logger.debug(
                "Dropping superseded lookup %d for %r", request.generation, request.token
            )
            return False
        return True
