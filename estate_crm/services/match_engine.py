"""
Property-buyer match engine.
Pure scoring and hard-filter functions shared by the matching service and the match preview endpoint.
"""

from typing import Any, List, Optional, Sequence, Tuple

# Additive score weights
BUDGET_RANGE_POINTS = 30
BUDGET_MAX_POINTS = 25
CITY_POINTS = 25
NEIGHBORHOOD_POINTS = 15
ROOMS_POINTS = 15
FLOOR_RANGE_POINTS = 10
FLOOR_MIN_POINTS = 5
FEATURE_POINTS = 5
MAX_SCORE = 100

# Hard filter budget flexibility
BUDGET_TOLERANCE = 0.2

# Reason labels shown to agents
REASON_BUDGET_FITS = "תקציב מתאים"
REASON_WITHIN_BUDGET = "בטווח תקציב"
REASON_CITY = "עיר מועדפת"
REASON_NEIGHBORHOOD = "שכונה מועדפת"
REASON_ROOMS = "מספר חדרים מתאים"
REASON_FLOOR_RANGE = "קומה מתאימה"
REASON_FLOOR_MIN = "קומה מינימלית"

EXCLUDE_BELOW_BUDGET = "מחיר מתחת לטווח התקציב"
EXCLUDE_ABOVE_BUDGET = "מחיר מעל לטווח התקציב"
EXCLUDE_CITY = "עיר לא תואמת"
EXCLUDE_NO_SAFE_ROOM = "אין ממ״ד"
EXCLUDE_NO_SUN_BALCONY = "אין מרפסת שמש"
EXCLUDE_NO_PARKING = "אין חניה"
EXCLUDE_NO_ELEVATOR = "אין מעלית"
EXCLUDE_NEIGHBORHOOD = "שכונה לא תואמת"

FEATURE_LABELS = {
    "has_elevator": "מעלית",
    "has_safe_room": "ממ״ד",
    "has_sun_balcony": "מרפסת שמש",
    "parking_spots": "חניה",
}


def _num(value: Any) -> Optional[float]:
    """Numeric columns come back as Decimal; compare everything as float."""
    return None if value is None else float(value)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def property_features(prop: Any) -> List[str]:
    """Feature keys a property actually has."""
    features = []
    if prop.has_elevator:
        features.append("has_elevator")
    if prop.has_safe_room:
        features.append("has_safe_room")
    if prop.has_sun_balcony:
        features.append("has_sun_balcony")
    if prop.parking_spots and prop.parking_spots > 0:
        features.append("parking_spots")
    return features


def score_property(buyer: Any, prop: Any) -> Tuple[int, List[str]]:
    """
    Compute the additive match score between a buyer and a property.

    Every predicate is independent; a missing value on either side simply
    contributes nothing.

    Args:
        buyer: Buyer-like object with preference attributes
        prop: Property-like object with listing attributes

    Returns:
        Tuple of (score clamped to 0..100, list of reason labels)
    """
    score = 0
    reasons: List[str] = []

    price = _num(prop.price)
    budget_min = _num(buyer.budget_min)
    budget_max = _num(buyer.budget_max)

    if budget_min is not None and budget_max is not None:
        if price is not None and budget_min <= price <= budget_max:
            score += BUDGET_RANGE_POINTS
            reasons.append(REASON_BUDGET_FITS)
    elif budget_max is not None and price is not None and price <= budget_max:
        score += BUDGET_MAX_POINTS
        reasons.append(REASON_WITHIN_BUDGET)

    if buyer.target_cities and prop.city in buyer.target_cities:
        score += CITY_POINTS
        reasons.append(REASON_CITY)

    if buyer.target_neighborhoods and prop.neighborhood and prop.neighborhood in buyer.target_neighborhoods:
        score += NEIGHBORHOOD_POINTS
        reasons.append(REASON_NEIGHBORHOOD)

    min_rooms = _num(buyer.min_rooms)
    rooms = _num(prop.rooms)
    if min_rooms is not None and rooms is not None and rooms >= min_rooms:
        score += ROOMS_POINTS
        reasons.append(REASON_ROOMS)

    if prop.floor is not None:
        if buyer.floor_min is not None and buyer.floor_max is not None:
            if buyer.floor_min <= prop.floor <= buyer.floor_max:
                score += FLOOR_RANGE_POINTS
                reasons.append(REASON_FLOOR_RANGE)
        elif buyer.floor_min is not None and prop.floor >= buyer.floor_min:
            score += FLOOR_MIN_POINTS
            reasons.append(REASON_FLOOR_MIN)

    if buyer.required_features:
        available = property_features(prop)
        matched = [f for f in buyer.required_features if f in available]
        if matched:
            score += len(matched) * FEATURE_POINTS
            reasons.append(f"{len(matched)} תכונות נדרשות")

    return max(0, min(score, MAX_SCORE)), reasons


def apply_hard_filters(buyer: Any, prop: Any) -> Tuple[bool, Optional[str]]:
    """
    Check a property against the buyer's hard filters.

    Filters run in a fixed order and the first failure wins, so the stored
    exclusion reason is deterministic.

    Args:
        buyer: Buyer-like object
        prop: Property-like object

    Returns:
        Tuple of (passed, exclusion reason or None)
    """
    price = _num(prop.price)

    budget_min = _num(buyer.budget_min)
    if budget_min and price is not None and price < budget_min * (1 - BUDGET_TOLERANCE):
        return False, EXCLUDE_BELOW_BUDGET

    budget_max = _num(buyer.budget_max)
    if budget_max and price is not None and price > budget_max * (1 + BUDGET_TOLERANCE):
        return False, EXCLUDE_ABOVE_BUDGET

    min_rooms = _num(buyer.min_rooms)
    rooms = _num(prop.rooms)
    if min_rooms and (rooms is None or rooms < min_rooms):
        return False, f"נדרשים לפחות {_format_number(min_rooms)} חדרים"

    if buyer.target_cities and prop.city not in buyer.target_cities:
        return False, EXCLUDE_CITY

    for feature in buyer.required_features or []:
        if feature == "has_safe_room" and not prop.has_safe_room:
            return False, EXCLUDE_NO_SAFE_ROOM
        if feature == "has_sun_balcony" and not prop.has_sun_balcony:
            return False, EXCLUDE_NO_SUN_BALCONY
        if feature == "parking_spots" and (not prop.parking_spots or prop.parking_spots < 1):
            return False, EXCLUDE_NO_PARKING
        if feature == "has_elevator" and not prop.has_elevator:
            return False, EXCLUDE_NO_ELEVATOR

    if buyer.floor_min is not None:
        if prop.floor is None or prop.floor < buyer.floor_min:
            return False, f"קומה נמוכה מ-{buyer.floor_min}"

    if buyer.floor_max is not None:
        if prop.floor is not None and prop.floor > buyer.floor_max:
            return False, f"קומה גבוהה מ-{buyer.floor_max}"

    # An empty neighborhood list accepts every neighborhood in the target cities
    if buyer.target_neighborhoods:
        if not prop.neighborhood or prop.neighborhood not in buyer.target_neighborhoods:
            return False, EXCLUDE_NEIGHBORHOOD

    return True, None


def match_properties(buyer: Any, properties: Sequence[Any]) -> List[dict]:
    """
    Rank properties for a buyer by additive score.

    Args:
        buyer: Buyer-like object
        properties: Candidate properties

    Returns:
        List of {"property", "match_score", "match_reasons"} with score > 0, best first
    """
    results = []
    for prop in properties:
        score, reasons = score_property(buyer, prop)
        if score > 0:
            results.append({"property": prop, "match_score": score, "match_reasons": reasons})

    results.sort(key=lambda item: item["match_score"], reverse=True)
    return results


def is_candidate_buyer(buyer: Any, prop: Any, tolerance: float = BUDGET_TOLERANCE) -> bool:
    """
    Cheap prefilter used when a property changes and buyers must be rematched.

    Args:
        buyer: Buyer-like object
        prop: Property-like object
        tolerance: Budget flexibility as a fraction

    Returns:
        True if the buyer could plausibly match the property
    """
    if buyer.target_cities and prop.city not in buyer.target_cities:
        return False

    price = _num(prop.price)
    if price is None:
        return True

    budget_min = _num(buyer.budget_min)
    budget_max = _num(buyer.budget_max)
    if budget_min and price < budget_min * (1 - tolerance):
        return False
    if budget_max and price > budget_max * (1 + tolerance):
        return False

    return True


def describe_filters(buyer: Any) -> dict:
    """Summarize the buyer's active filters for match responses."""
    budget_min = _num(buyer.budget_min)
    budget_max = _num(buyer.budget_max)
    budget = f"{_format_number(budget_min) if budget_min else 0}-{_format_number(budget_max) if budget_max else '∞'}"

    return {
        "budget": budget,
        "min_rooms": _num(buyer.min_rooms),
        "cities": list(buyer.target_cities or []),
        "neighborhoods": list(buyer.target_neighborhoods or []),
        "features": [FEATURE_LABELS.get(f, f) for f in (buyer.required_features or [])],
        "floor_range": {"min": buyer.floor_min, "max": buyer.floor_max},
    }
