import pytest

from gachaforge.domain.exceptions import ConfigurationError
from gachaforge.domain.pity import PityRule, PityState, PityTracker
from gachaforge.domain.rarity import Rarity


def test_guarantee_forced_on_kth_roll():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.RARE, 3)])

    assert not tracker.should_force_guarantee(state)
    state = tracker.record_miss(state)
    assert not tracker.should_force_guarantee(state)
    state = tracker.record_miss(state)
    assert tracker.should_force_guarantee(state)
    assert state.consecutive_misses == 2
    assert state.guaranteed_at_threshold == 3

    state = tracker.record_hit(state)
    assert state.consecutive_misses == 0
    assert not tracker.should_force_guarantee(state)


def test_threshold_one_forces_every_roll():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.EPIC, 1)])
    assert tracker.forced_rarity(state) is Rarity.EPIC


def test_state_without_counters_never_forces():
    tracker = PityTracker()
    state = PityState()
    assert not tracker.should_force_guarantee(state)
    assert tracker.record_miss(state) == state
    assert state.guaranteed_at_threshold is None


def test_record_updates_every_counter_from_drawn_rarity():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.RARE, 10), PityRule(Rarity.EPIC, 30)])
    for _ in range(4):
        state = tracker.record(state, Rarity.COMMON)
    state = tracker.record(state, Rarity.RARE)
    assert state.misses_for(Rarity.RARE) == 0
    assert state.misses_for(Rarity.EPIC) == 5

    state = tracker.record(state, Rarity.LEGENDARY)
    assert state.misses_for(Rarity.RARE) == 0
    assert state.misses_for(Rarity.EPIC) == 0



def test_record_draw_settles_forced_counters_after_fallback():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.RARE, 2), PityRule(Rarity.EPIC, 5)])
    state = tracker.record(state, Rarity.COMMON)
    forced = tracker.forced_rarity(state)
    assert forced is Rarity.RARE

    state = tracker.record_draw(state, Rarity.COMMON, forced)
    assert state.misses_for(Rarity.RARE) == 0
    assert state.misses_for(Rarity.EPIC) == 2
    assert tracker.forced_rarity(state) is None

def test_forced_rarity_picks_highest_due_target():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.RARE, 2), PityRule(Rarity.EPIC, 2)])
    state = tracker.record(state, Rarity.COMMON)
    assert tracker.forced_rarity(state) is Rarity.EPIC


def test_progress_reports_percentage():
    tracker = PityTracker()
    state = PityState.fresh([PityRule(Rarity.RARE, 10)])
    for _ in range(5):
        state = tracker.record(state, Rarity.COMMON)
    (progress,) = tracker.progress(state)
    assert progress.current == 5
    assert progress.percentage == pytest.approx(50.0)


def test_state_round_trips_through_dict():
    state = PityState.fresh([PityRule(Rarity.RARE, 10), PityRule(Rarity.EPIC, 30)])
    state = PityTracker().record(state, Rarity.COMMON)
    assert PityState.from_dict(state.to_dict()) == state


def test_invalid_rules_rejected():
    with pytest.raises(ConfigurationError):
        PityRule(Rarity.RARE, 0)
    with pytest.raises(ConfigurationError):
        PityState.fresh([PityRule(Rarity.RARE, 10), PityRule(Rarity.RARE, 20)])
