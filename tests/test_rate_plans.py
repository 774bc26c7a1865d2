"""Tests for rate plan resolution."""

from datetime import date

from innkeep.domain.rate_plans import RatePlanFailure, RatePlanResolver, choose_rate_plan
from innkeep.domain.results import Failure

from .helpers import rate_plan


class TestChooseRatePlan:
    def test_default_wins(self):
        plans = [
            rate_plan(1, name="A", is_default=False),
            rate_plan(2, name="B", is_default=True),
        ]
        assert choose_rate_plan(plans, room_type_id=1).id == 2

    def test_specific_before_global(self):
        plans = [
            rate_plan(1, name="A Global"),
            rate_plan(2, name="Z Specific", room_type_id=1),
        ]
        assert choose_rate_plan(plans, room_type_id=1).id == 2

    def test_name_breaks_ties(self):
        plans = [rate_plan(1, name="Flex"), rate_plan(2, name="Advance")]
        assert choose_rate_plan(plans, room_type_id=1).id == 2

    def test_other_room_type_excluded(self):
        assert choose_rate_plan([rate_plan(1, room_type_id=2)], room_type_id=1) is None

    def test_segment_preferred(self):
        plans = [
            rate_plan(1, name="Public"),
            rate_plan(2, name="Corporate", is_default=False, guest_segment="corporate"),
        ]
        assert choose_rate_plan(plans, room_type_id=1, guest_segment="corporate").id == 2

    def test_segment_falls_back_to_agnostic_plans(self):
        plans = [
            rate_plan(1, name="Public", is_default=False),
            rate_plan(2, name="Member", guest_segment="member"),
        ]
        assert choose_rate_plan(plans, room_type_id=1, guest_segment="corporate").id == 1

    def test_validity_window(self):
        plans = [
            rate_plan(1, name="Summer", valid_from=date(2025, 6, 1), valid_until=date(2025, 8, 31)),
            rate_plan(2, name="Year round", is_default=False),
        ]
        assert choose_rate_plan(plans, room_type_id=1, on=date(2025, 7, 1)).id == 1
        assert choose_rate_plan(plans, room_type_id=1, on=date(2025, 10, 1)).id == 2


class TestRatePlanResolver:
    def _resolver(self, cache, plans):
        by_id = {p.id: p for p in plans}
        return RatePlanResolver(
            cache,
            load_plan=by_id.get,
            load_active=lambda rt: [p for p in plans if p.is_active],
        )

    def test_explicit_plan(self, cache):
        resolver = self._resolver(cache, [rate_plan(5, room_type_id=1)])
        assert resolver.resolve(1, 5).id == 5

    def test_explicit_not_found(self, cache):
        result = self._resolver(cache, []).resolve(1, 99)
        assert isinstance(result, Failure)
        assert result.reason is RatePlanFailure.NOT_FOUND

    def test_explicit_inactive(self, cache):
        result = self._resolver(cache, [rate_plan(5, is_active=False)]).resolve(1, 5)
        assert result.reason is RatePlanFailure.INACTIVE

    def test_explicit_outside_validity(self, cache):
        plan = rate_plan(5, valid_until=date(2025, 1, 31))
        result = self._resolver(cache, [plan]).resolve(1, 5, on=date(2025, 2, 1))
        assert result.reason is RatePlanFailure.INACTIVE

    def test_explicit_not_applicable(self, cache):
        result = self._resolver(cache, [rate_plan(5, room_type_id=2)]).resolve(1, 5)
        assert result.reason is RatePlanFailure.NOT_APPLICABLE
        assert result.meta == {"rate_plan_id": 5, "room_type_id": 1}

    def test_automatic(self, cache):
        resolver = self._resolver(cache, [rate_plan(1, is_default=False), rate_plan(2)])
        assert resolver.resolve(1).id == 2

    def test_automatic_none_available(self, cache):
        result = self._resolver(cache, []).resolve(1)
        assert result.reason is RatePlanFailure.NOT_FOUND

    def test_active_list_cached(self, cache):
        calls = []

        def load_active(rt):
            calls.append(rt)
            return [rate_plan(1)]

        resolver = RatePlanResolver(cache, load_plan=lambda i: None, load_active=load_active)
        resolver.resolve(1)
        resolver.resolve(1)
        assert calls == [1]
