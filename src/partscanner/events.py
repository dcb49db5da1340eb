"""Events delivered to the main loop from capture, detection and lookup workers."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .errors import CameraErrorKind, PartLookupError

if TYPE_CHECKING:
    from .lookup import PartRecord
    from .session import LookupRequest


@dataclass(frozen=True)
class ScanEvent:
    raw_text: str
    timestamp: float


@dataclass(frozen=True)
class Decoded:
    scan: ScanEvent
    stream: int


@dataclass(frozen=True)
class DecodeFailed:
    kind: CameraErrorKind
    message: str
    stream: int


@dataclass(frozen=True)
class LookupFinished:
    request: "LookupRequest"
    record: Optional["PartRecord"] = None
    error: Optional[PartLookupError] = field(default=None)
