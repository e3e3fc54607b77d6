"""Unit tests for state models."""

import numpy as np
import pytest

from qdfield.core.errors import InvalidFanOutError
from qdfield.core.state import (
    ArrayState,
    BooleanState,
    DelegatingState,
    IntegerState,
    RealState,
    UnitState,
    resolve_state_model,
    subdivide_state,
    super_state_at_level,
)


class Mass:
    """User-defined state carrying its own rules."""

    def __init__(self, kg: float):
        self.kg = kg

    def subdivide(self, k):
        return [Mass(self.kg / k) for _ in range(k)]

    @staticmethod
    def merge(states):
        return Mass(sum(s.kg for s in states))


class Charge(Mass):
    @classmethod
    def super_state_at_level(cls, state, fan_out, levels):
        return Charge(-1.0)


class TestIntegerState:
    """Tests for exact integer subdivision."""

    def test_even_split(self):
        assert IntegerState().subdivide(9, 3) == [3, 3, 3]
        assert IntegerState().subdivide(16, 4) == [4, 4, 4, 4]

    def test_remainder_goes_to_first_children(self):
        assert IntegerState().subdivide(10, 3) == [4, 3, 3]
        assert IntegerState().subdivide(2, 4) == [1, 1, 0, 0]

    @pytest.mark.parametrize("value", [0, 1, 7, 10, 99, -10, 12345])
    def test_merge_subdivide_is_exact(self, value):
        model = IntegerState()
        for k in range(1, 8):
            assert model.merge(model.subdivide(value, k)) == value

    def test_super_state(self):
        assert IntegerState().super_state_at_level(1, 3, 2) == 9
        assert IntegerState().super_state_at_level(5, 4, 0) == 5


class TestRealState:
    """Tests for floating point subdivision."""

    def test_even_split(self):
        assert RealState().subdivide(9.0, 3) == [3.0, 3.0, 3.0]

    def test_merge_subdivide_up_to_rounding(self):
        model = RealState()
        for k in range(1, 8):
            assert np.isclose(model.merge(model.subdivide(1.0, k)), 1.0)

    def test_super_state(self):
        assert RealState().super_state_at_level(0.5, 4, 2) == 8.0


class TestBooleanState:
    """Tests for flag states."""

    def test_children_inherit(self):
        assert BooleanState().subdivide(True, 3) == [True, True, True]

    def test_merge_is_any(self):
        assert BooleanState().merge([False, True, False]) is True
        assert BooleanState().merge([False, False]) is False

    def test_round_trip(self):
        model = BooleanState()
        for value in (True, False):
            assert model.merge(model.subdivide(value, 4)) is value


class TestUnitState:
    """Tests for the no-payload model."""

    def test_everything_is_none(self):
        model = UnitState()
        assert model.subdivide(None, 3) == [None, None, None]
        assert model.merge([None, None]) is None
        assert model.super_state_at_level(None, 3, 4) is None


class TestArrayState:
    """Tests for vector states."""

    def test_split_and_merge(self):
        model = ArrayState()
        parts = model.subdivide(np.array([3.0, 6.0]), 3)
        assert len(parts) == 3
        assert np.allclose(parts[0], [1.0, 2.0])
        assert np.allclose(model.merge(parts), [3.0, 6.0])

    def test_children_are_independent(self):
        parts = ArrayState().subdivide(np.ones(2), 2)
        parts[0][0] = 100.0
        assert parts[1][0] == 0.5

    def test_super_state(self):
        assert np.allclose(ArrayState().super_state_at_level(np.ones(3), 3, 2), 9.0)


class TestDelegatingState:
    """Tests for user-defined state objects."""

    def test_delegates(self):
        model = DelegatingState()
        parts = model.subdivide(Mass(6.0), 3)
        assert [p.kg for p in parts] == [2.0, 2.0, 2.0]
        assert model.merge(parts).kg == 6.0

    def test_super_state_fallback_merges_copies(self):
        root = DelegatingState().super_state_at_level(Mass(1.0), 3, 2)
        assert root.kg == 9.0

    def test_super_state_uses_type_rule(self):
        root = DelegatingState().super_state_at_level(Charge(1.0), 3, 2)
        assert root.kg == -1.0


class TestResolveStateModel:
    """Tests for automatic model selection."""

    def test_picks_ready_made_models(self):
        assert isinstance(resolve_state_model(None), UnitState)
        assert isinstance(resolve_state_model(True), BooleanState)
        assert isinstance(resolve_state_model(np.bool_(False)), BooleanState)
        assert isinstance(resolve_state_model(9), IntegerState)
        assert isinstance(resolve_state_model(np.int64(9)), IntegerState)
        assert isinstance(resolve_state_model(9.0), RealState)
        assert isinstance(resolve_state_model(np.zeros(3)), ArrayState)
        assert isinstance(resolve_state_model(Mass(1.0)), DelegatingState)

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError):
            resolve_state_model("nine")


class TestSubdivideState:
    """Tests for fan-out checking."""

    def test_returns_list(self):
        assert subdivide_state(IntegerState(), 9, 3) == [3, 3, 3]

    def test_wrong_count_raises(self):
        class Broken:
            def subdivide(self, state, k):
                return [state]

            def merge(self, states):
                return states[0]

        with pytest.raises(InvalidFanOutError) as excinfo:
            subdivide_state(Broken(), 9, 3)
        assert excinfo.value.actual == 1
        assert excinfo.value.expected == 3

    def test_super_state_without_rule_merges_up(self):
        class Summing:
            def subdivide(self, state, k):
                return [state / k] * k

            def merge(self, states):
                return sum(states)

        assert super_state_at_level(Summing(), 2.0, 4, 2) == 32.0
