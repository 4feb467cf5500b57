"""Tests for DeltaRateState."""

import pytest

from host_agent.collectors.delta import DeltaRateState


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: float = 1_000_000.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state(clock):
    return DeltaRateState(clock=clock)


class TestColdState:
    def test_starts_cold(self, state):
        assert state.warm is False
        assert state.last_counters is None
        assert state.last_sample_ms is None

    def test_first_sample_is_baseline_only(self, state, clock):
        assert state.update({"rx": 5000}) is None
        assert state.warm is True
        assert state.last_counters == {"rx": 5000}
        assert state.last_sample_ms == clock.now


class TestWarmState:
    def test_rate_per_second(self, state, clock):
        state.update({"rx": 1000})
        clock.advance(2000)

        assert state.update({"rx": 5000}) == {"rx": 2000}

    @pytest.mark.parametrize("c1,c2,elapsed_ms,expected", [
        (0, 1000, 1000, 1000),
        (100, 400, 3000, 100),
        (0, 1000, 3000, 333),
        (0, 2000, 3000, 667),
        (500, 500, 1000, 0),
    ])
    def test_rate_formula(self, state, clock, c1, c2, elapsed_ms, expected):
        state.update({"c": c1})
        clock.advance(elapsed_ms)

        assert state.update({"c": c2}) == {"c": expected}

    def test_multiple_counters(self, state, clock):
        state.update({"read": 0, "write": 100})
        clock.advance(500)

        assert state.update({"read": 1000, "write": 600}) == {"read": 2000, "write": 1000}

    def test_state_advances_every_sample(self, state, clock):
        state.update({"c": 0})
        clock.advance(1000)
        state.update({"c": 100})
        clock.advance(1000)

        assert state.update({"c": 400}) == {"c": 300}


class TestEdgeCases:
    def test_counter_regression_clamped_to_zero(self, state, clock):
        state.update({"rx": 10_000})
        clock.advance(1000)

        assert state.update({"rx": 200}) == {"rx": 0}

    def test_regression_resets_baseline(self, state, clock):
        state.update({"rx": 10_000})
        clock.advance(1000)
        state.update({"rx": 200})
        clock.advance(1000)

        assert state.update({"rx": 1200}) == {"rx": 1000}

    def test_zero_elapsed_emits_nothing(self, state, clock):
        state.update({"rx": 100})

        assert state.update({"rx": 900}) is None
        # The sample is still recorded
        assert state.last_counters == {"rx": 900}

    def test_clock_going_backwards_emits_nothing(self, state, clock):
        state.update({"rx": 100})
        clock.advance(-5000)

        assert state.update({"rx": 900}) is None

    def test_new_counter_key_starts_at_zero_rate(self, state, clock):
        state.update({"a": 100})
        clock.advance(1000)

        assert state.update({"a": 200, "b": 5000}) == {"a": 100, "b": 0}

    def test_rate_helper_never_negative(self):
        assert DeltaRateState.rate(500, 100, 1.0) == 0
        assert DeltaRateState.rate(100, 500, 2.0) == 200
