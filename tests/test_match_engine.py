"""
Tests for the match engine: additive scoring, hard filters and candidate prefiltering.
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace

from estate_crm.services import match_engine


def make_buyer(**overrides):
    data = {
        "budget_min": None,
        "budget_max": None,
        "min_rooms": None,
        "target_cities": [],
        "target_neighborhoods": [],
        "required_features": [],
        "floor_min": None,
        "floor_max": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def make_property(**overrides):
    data = {
        "price": Decimal("2000000"),
        "city": "רחובות",
        "neighborhood": "מרכז העיר",
        "rooms": Decimal("4"),
        "floor": 3,
        "parking_spots": 1,
        "has_elevator": True,
        "has_safe_room": True,
        "has_sun_balcony": False,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestScoreProperty:
    """Test additive scoring."""

    def test_full_preferences_score(self):
        buyer = make_buyer(
            budget_min=Decimal("1800000"),
            budget_max=Decimal("2200000"),
            target_cities=["רחובות"],
            target_neighborhoods=["מרכז העיר"],
            min_rooms=Decimal("3"),
            floor_min=1,
            floor_max=5,
            required_features=["has_elevator", "has_safe_room"],
        )

        score, reasons = match_engine.score_property(buyer, make_property())

        # 30 + 25 + 15 + 15 + 10 + 2 * 5 = 105, clamped
        assert score == 100
        assert match_engine.REASON_BUDGET_FITS in reasons
        assert match_engine.REASON_CITY in reasons
        assert match_engine.REASON_NEIGHBORHOOD in reasons
        assert match_engine.REASON_ROOMS in reasons
        assert match_engine.REASON_FLOOR_RANGE in reasons
        assert "2 תכונות נדרשות" in reasons

    def test_budget_max_only(self):
        buyer = make_buyer(budget_max=Decimal("2500000"))

        score, reasons = match_engine.score_property(buyer, make_property())

        assert score == match_engine.BUDGET_MAX_POINTS
        assert reasons == [match_engine.REASON_WITHIN_BUDGET]

    def test_price_outside_range_scores_nothing_for_budget(self):
        buyer = make_buyer(budget_min=Decimal("1000000"), budget_max=Decimal("1500000"))

        score, reasons = match_engine.score_property(buyer, make_property())

        assert score == 0
        assert reasons == []

    def test_floor_min_only(self):
        buyer = make_buyer(floor_min=2)

        score, reasons = match_engine.score_property(buyer, make_property(floor=4))

        assert score == match_engine.FLOOR_MIN_POINTS
        assert reasons == [match_engine.REASON_FLOOR_MIN]

    def test_missing_values_contribute_nothing(self):
        buyer = make_buyer(
            budget_min=Decimal("1"),
            budget_max=Decimal("10"),
            min_rooms=Decimal("3"),
            floor_min=0,
            floor_max=10,
        )
        prop = make_property(price=None, rooms=None, floor=None, neighborhood=None)

        score, reasons = match_engine.score_property(buyer, prop)

        assert score == 0
        assert reasons == []

    def test_plain_numbers_score_like_decimals(self):
        decimal_buyer = make_buyer(budget_min=Decimal("1800000"), budget_max=Decimal("2200000"), min_rooms=Decimal("3"))
        plain_buyer = make_buyer(budget_min=1800000, budget_max=2200000.0, min_rooms=3)
        plain_property = make_property(price=2000000, rooms=4.0)

        assert match_engine.score_property(plain_buyer, plain_property) == (
            match_engine.score_property(decimal_buyer, make_property())
        )
        assert match_engine.apply_hard_filters(plain_buyer, plain_property) == (True, None)

    def test_parking_counts_as_feature(self):
        buyer = make_buyer(required_features=["parking_spots", "has_sun_balcony"])

        score, reasons = match_engine.score_property(buyer, make_property(parking_spots=2))

        assert score == match_engine.FEATURE_POINTS
        assert reasons == ["1 תכונות נדרשות"]


class TestHardFilters:
    """Test hard filters and their exclusion reasons."""

    def test_passes(self):
        buyer = make_buyer(
            budget_min=Decimal("1800000"),
            budget_max=Decimal("2200000"),
            target_cities=["רחובות"],
            min_rooms=Decimal("3"),
        )

        assert match_engine.apply_hard_filters(buyer, make_property()) == (True, None)

    def test_budget_tolerance(self):
        buyer = make_buyer(budget_max=Decimal("1700000"))

        # 1,700,000 * 1.2 = 2,040,000 still admits 2,000,000
        assert match_engine.apply_hard_filters(buyer, make_property())[0] is True
        assert match_engine.apply_hard_filters(buyer, make_property(price=Decimal("2100000"))) == (
            False, match_engine.EXCLUDE_ABOVE_BUDGET
        )

    def test_below_budget(self):
        buyer = make_buyer(budget_min=Decimal("3000000"))

        assert match_engine.apply_hard_filters(buyer, make_property()) == (
            False, match_engine.EXCLUDE_BELOW_BUDGET
        )

    def test_missing_price_passes_budget(self):
        buyer = make_buyer(budget_min=Decimal("3000000"), budget_max=Decimal("4000000"))

        assert match_engine.apply_hard_filters(buyer, make_property(price=None)) == (True, None)

    def test_rooms_reason_mentions_minimum(self):
        buyer = make_buyer(min_rooms=Decimal("5"))

        passed, reason = match_engine.apply_hard_filters(buyer, make_property())

        assert passed is False
        assert reason == "נדרשים לפחות 5 חדרים"

    def test_missing_rooms_fails_room_filter(self):
        buyer = make_buyer(min_rooms=Decimal("2.5"))

        passed, reason = match_engine.apply_hard_filters(buyer, make_property(rooms=None))

        assert passed is False
        assert reason == "נדרשים לפחות 2.5 חדרים"

    def test_city_mismatch(self):
        buyer = make_buyer(target_cities=["יבנה"])

        assert match_engine.apply_hard_filters(buyer, make_property()) == (False, match_engine.EXCLUDE_CITY)

    @pytest.mark.parametrize("feature,prop_overrides,reason", [
        ("has_safe_room", {"has_safe_room": False}, match_engine.EXCLUDE_NO_SAFE_ROOM),
        ("has_sun_balcony", {"has_sun_balcony": False}, match_engine.EXCLUDE_NO_SUN_BALCONY),
        ("parking_spots", {"parking_spots": 0}, match_engine.EXCLUDE_NO_PARKING),
        ("has_elevator", {"has_elevator": False}, match_engine.EXCLUDE_NO_ELEVATOR),
    ])
    def test_required_features(self, feature, prop_overrides, reason):
        buyer = make_buyer(required_features=[feature])

        assert match_engine.apply_hard_filters(buyer, make_property(**prop_overrides)) == (False, reason)

    def test_floor_bounds(self):
        assert match_engine.apply_hard_filters(make_buyer(floor_min=4), make_property(floor=3)) == (
            False, "קומה נמוכה מ-4"
        )
        assert match_engine.apply_hard_filters(make_buyer(floor_min=1), make_property(floor=None)) == (
            False, "קומה נמוכה מ-1"
        )
        assert match_engine.apply_hard_filters(make_buyer(floor_max=2), make_property(floor=3)) == (
            False, "קומה גבוהה מ-2"
        )
        # Unknown floor never fails the upper bound
        assert match_engine.apply_hard_filters(make_buyer(floor_max=2), make_property(floor=None))[0] is True

    def test_neighborhood(self):
        buyer = make_buyer(target_neighborhoods=["נווה יהודה"])

        assert match_engine.apply_hard_filters(buyer, make_property()) == (
            False, match_engine.EXCLUDE_NEIGHBORHOOD
        )
        assert match_engine.apply_hard_filters(buyer, make_property(neighborhood=None)) == (
            False, match_engine.EXCLUDE_NEIGHBORHOOD
        )

    def test_first_failure_wins(self):
        buyer = make_buyer(budget_max=Decimal("1000000"), target_cities=["יבנה"])

        assert match_engine.apply_hard_filters(buyer, make_property())[1] == match_engine.EXCLUDE_ABOVE_BUDGET


class TestRanking:
    """Test ranking and candidate selection."""

    def test_match_properties_sorted_and_zero_dropped(self):
        buyer = make_buyer(target_cities=["רחובות"], min_rooms=Decimal("4"))
        best = make_property(rooms=Decimal("5"))
        city_only = make_property(rooms=Decimal("3"))
        nothing = make_property(city="יבנה", rooms=Decimal("2"))

        results = match_engine.match_properties(buyer, [city_only, nothing, best])

        assert [item["property"] for item in results] == [best, city_only]
        assert results[0]["match_score"] == 40
        assert results[1]["match_score"] == 25

    def test_is_candidate_buyer(self):
        prop = make_property()

        assert match_engine.is_candidate_buyer(make_buyer(), prop) is True
        assert match_engine.is_candidate_buyer(make_buyer(target_cities=["יבנה"]), prop) is False
        assert match_engine.is_candidate_buyer(make_buyer(budget_max=Decimal("1000000")), prop) is False
        assert match_engine.is_candidate_buyer(make_buyer(budget_min=Decimal("5000000")), make_property(price=None)) is True

    def test_describe_filters(self):
        buyer = make_buyer(
            budget_max=Decimal("2500000"),
            min_rooms=Decimal("3.5"),
            target_cities=["רחובות"],
            required_features=["has_safe_room"],
            floor_min=1,
        )

        filters = match_engine.describe_filters(buyer)

        assert filters["budget"] == "0-2500000"
        assert filters["min_rooms"] == 3.5
        assert filters["features"] == ["ממ״ד"]
        assert filters["floor_range"] == {"min": 1, "max": None}
