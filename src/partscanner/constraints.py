"""
Camera constraint ladder and the negotiator that walks it.

Cameras and drivers differ in what they accept. The negotiator starts with the
most specific profile (preferred facing plus a resolution window) and relaxes
one rung at a time whenever the camera rejects the active profile. Other
failures are fatal and need an explicit restart by the user.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from .errors import CameraErrorKind

FACING_ENVIRONMENT = "environment"
FACING_USER = "user"


@dataclass(frozen=True)
class ResolutionHint:
    min: Optional[int] = None
    ideal: Optional[int] = None
    max: Optional[int] = None

    def accepts(self, value: float) -> bool:
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


def _bounds(hint: Optional[ResolutionHint]) -> Tuple[Optional[int], Optional[int]]:
    if hint is None:
        return None, None
    return hint.min, hint.max


def _has_ideal(profile: "ConstraintProfile") -> bool:
    return any(h is not None and h.ideal is not None for h in (profile.width, profile.height))


@dataclass(frozen=True)
class ConstraintProfile:
    rank: int
    facing: Optional[str] = None
    width: Optional[ResolutionHint] = None
    height: Optional[ResolutionHint] = None

    @property
    def unconstrained(self) -> bool:
        return self.facing is None and self.width is None and self.height is None

    def hard_constraints(self) -> Tuple:
        """Facing plus resolution bounds; ideal values are preferences only."""
        return (self.facing, _bounds(self.width), _bounds(self.height))

    def relaxes(self, other: "ConstraintProfile") -> bool:
        """True when this profile accepts everything other accepts, and more.

        A rung may drop the facing, drop or widen bounds, and drop ideal
        values. It may never add a facing or tighten a bound.
        """
        if self.facing is not None and self.facing != other.facing:
            return False
        for mine, theirs in ((self.width, other.width), (self.height, other.height)):
            lo, hi = _bounds(mine)
            other_lo, other_hi = _bounds(theirs)
            if lo is not None and (other_lo is None or lo > other_lo):
                return False
            if hi is not None and (other_hi is None or hi < other_hi):
                return False
        if self.hard_constraints() != other.hard_constraints():
            return True
        return _has_ideal(other) and not _has_ideal(self)


DEFAULT_LADDER: Sequence[ConstraintProfile] = (
    ConstraintProfile(
        rank=0,
        facing=FACING_ENVIRONMENT,
        width=ResolutionHint(320, 640, 1920),
        height=ResolutionHint(240, 480, 1080),
    ),
    ConstraintProfile(rank=1, facing=FACING_ENVIRONMENT),
    ConstraintProfile(
        rank=2, width=ResolutionHint(ideal=640), height=ResolutionHint(ideal=480)
    ),
    ConstraintProfile(rank=3),
)


class Decision(str, Enum):
    RESTART = "restart"
    FATAL = "fatal"


@dataclass
class NegotiationState:
    active_rank: int = 0
    last_error: Optional[CameraErrorKind] = None
    running: bool = False


class ConstraintNegotiator:
    """
    Owns the ladder position and the facing preference.

    The ladder's facing entries are placeholders: rungs that carry a facing
    use the current preference, which the user toggles with switch_facing().
    """

    def __init__(
        self,
        ladder: Sequence[ConstraintProfile] = DEFAULT_LADDER,
        facing: str = FACING_ENVIRONMENT,
    ):
        if not ladder:
            raise ValueError("Constraint ladder must have at least one rung")
        if not ladder[-1].unconstrained:
            raise ValueError("Last ladder rung must not impose constraints")
        if [p.rank for p in ladder] != list(range(len(ladder))):
            raise ValueError("Ladder ranks must run 0, 1, 2, ... in order")
        for previous, current in zip(ladder, ladder[1:]):
            if not current.relaxes(previous):
                raise ValueError(
                    f"Ladder rung {current.rank} does not relax rung {previous.rank}"
                )
        self.ladder = tuple(ladder)
        self.facing = facing
        self.state = NegotiationState()

    @property
    def max_rank(self) -> int:
        return len(self.ladder) - 1

    def active_profile(self) -> ConstraintProfile:
        profile = self.ladder[self.state.active_rank]
        if profile.facing is not None:
            profile = replace(profile, facing=self.facing)
        return profile

    def start(self) -> ConstraintProfile:
        self.state = NegotiationState(running=True)
        return self.active_profile()

    def stop(self) -> None:
        self.state = NegotiationState()

    def switch_facing(self) -> ConstraintProfile:
        self.facing = FACING_USER if self.facing == FACING_ENVIRONMENT else FACING_ENVIRONMENT
        self.state.active_rank = 0
        self.state.last_error = None
        return self.active_profile()

    def on_decoder_failure(self, kind: CameraErrorKind) -> Decision:
        self.state.last_error = kind
        if (
            kind == CameraErrorKind.CONSTRAINT_INCOMPATIBLE
            and self.state.active_rank < self.max_rank
        ):
            self.state.active_rank += 1
            return Decision.RESTART
        self.state.running = False
        return Decision.FATAL

    def mode_label(self) -> str:
        facing = self.active_profile().facing
        if facing is None:
            return "Basic Mode"
        return "Back Camera" if facing == FACING_ENVIRONMENT else "Front Camera"
