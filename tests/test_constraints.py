import pytest

from partscanner.constraints import (
    DEFAULT_LADDER,
    FACING_ENVIRONMENT,
    FACING_USER,
    ConstraintNegotiator,
    ConstraintProfile,
    Decision,
    ResolutionHint,
)
from partscanner.errors import CameraErrorKind

INCOMPATIBLE = CameraErrorKind.CONSTRAINT_INCOMPATIBLE


def test_reference_ladder_relaxes_to_no_constraints():
    assert [p.rank for p in DEFAULT_LADDER] == [0, 1, 2, 3]
    first, second, third, last = DEFAULT_LADDER
    assert first.facing and first.width.min == 320 and first.height.max == 1080
    assert second.facing and second.width is None
    assert third.facing is None and third.width.min is None and third.width.ideal == 640
    assert last.unconstrained


def test_walks_ladder_then_fails():
    negotiator = ConstraintNegotiator()
    negotiator.start()
    visited = [negotiator.active_profile().rank]
    decisions = []
    for _ in range(4):
        decisions.append(negotiator.on_decoder_failure(INCOMPATIBLE))
        visited.append(negotiator.state.active_rank)
    assert visited[:4] == [0, 1, 2, 3]
    assert decisions == [Decision.RESTART] * 3 + [Decision.FATAL]
    assert negotiator.state.running is False
    assert negotiator.state.last_error == INCOMPATIBLE


@pytest.mark.parametrize(
    "kind", [CameraErrorKind.PERMISSION_DENIED, CameraErrorKind.NO_DEVICE, CameraErrorKind.OTHER]
)
def test_other_failures_are_fatal_without_advancing(kind):
    negotiator = ConstraintNegotiator()
    negotiator.start()
    assert negotiator.on_decoder_failure(kind) == Decision.FATAL
    assert negotiator.state.active_rank == 0
    assert negotiator.state.running is False


@pytest.mark.parametrize("failures", [0, 1, 2, 3])
def test_switch_facing_resets_rank(failures):
    negotiator = ConstraintNegotiator()
    negotiator.start()
    for _ in range(failures):
        negotiator.on_decoder_failure(INCOMPATIBLE)
    profile = negotiator.switch_facing()
    assert negotiator.state.active_rank == 0
    assert profile.rank == 0
    assert profile.facing == FACING_USER
    assert negotiator.mode_label() == "Front Camera"


def test_stop_and_start_reset_rank():
    negotiator = ConstraintNegotiator()
    negotiator.start()
    negotiator.on_decoder_failure(INCOMPATIBLE)
    negotiator.stop()
    assert negotiator.state.active_rank == 0 and not negotiator.state.running
    for _ in range(4):
        negotiator.on_decoder_failure(INCOMPATIBLE)
    negotiator.start()
    assert negotiator.state.active_rank == 0
    assert negotiator.state.last_error is None
    assert negotiator.state.running


def test_active_profile_is_deterministic_and_uses_facing_preference():
    negotiator = ConstraintNegotiator(facing=FACING_USER)
    assert negotiator.active_profile() == negotiator.active_profile()
    assert negotiator.active_profile().facing == FACING_USER
    negotiator.on_decoder_failure(INCOMPATIBLE)
    negotiator.on_decoder_failure(INCOMPATIBLE)
    assert negotiator.active_profile().facing is None


def test_mode_labels():
    negotiator = ConstraintNegotiator(facing=FACING_ENVIRONMENT)
    assert negotiator.mode_label() == "Back Camera"
    for _ in range(3):
        negotiator.on_decoder_failure(INCOMPATIBLE)
    assert negotiator.mode_label() == "Basic Mode"


def test_ladder_must_end_unconstrained():
    with pytest.raises(ValueError):
        ConstraintNegotiator(ladder=[ConstraintProfile(0, facing=FACING_USER)])
    with pytest.raises(ValueError):
        ConstraintNegotiator(ladder=[])


def test_resolution_hint_bounds():
    hint = ResolutionHint(320, 640, 1920)
    assert hint.accepts(640) and hint.accepts(320) and hint.accepts(1920)
    assert not hint.accepts(319) and not hint.accepts(2560)
    assert ResolutionHint(ideal=640).accepts(10000)


def test_each_default_rung_relaxes_the_previous_one():
    for previous, current in zip(DEFAULT_LADDER, DEFAULT_LADDER[1:]):
        assert current.relaxes(previous)
        assert not previous.relaxes(current)
    ConstraintNegotiator(ladder=DEFAULT_LADDER)


@pytest.mark.parametrize(
    "ladder",
    [
        # tightens the lower width bound
        [
            ConstraintProfile(0, width=ResolutionHint(320, 640, 1920)),
            ConstraintProfile(1, width=ResolutionHint(640, 640, 1920)),
            ConstraintProfile(2),
        ],
        # adds a facing the previous rung did not have
        [
            ConstraintProfile(0, width=ResolutionHint(320, 640, 1920)),
            ConstraintProfile(1, facing=FACING_ENVIRONMENT),
            ConstraintProfile(2),
        ],
        # repeats a rung
        [
            ConstraintProfile(0, facing=FACING_ENVIRONMENT),
            ConstraintProfile(1, facing=FACING_ENVIRONMENT),
            ConstraintProfile(2),
        ],
        # ranks out of order
        [ConstraintProfile(1, facing=FACING_ENVIRONMENT), ConstraintProfile(0)],
    ],
)
def test_ladder_must_strictly_relax(ladder):
    with pytest.raises(ValueError):
        ConstraintNegotiator(ladder=ladder)


def test_dropping_ideal_values_is_a_relaxation():
    hinted = ConstraintProfile(0, width=ResolutionHint(ideal=640))
    assert ConstraintProfile(1).relaxes(hinted)
    assert hinted.hard_constraints() == ConstraintProfile(1).hard_constraints()
