"""Display formatting - Pure functions.

Turns distances, capacity state and filters into the short labels shown
on event and playdate cards. All functions are pure with no side effects.
"""

from parentconnect.core.filters import DateFacet, DistanceFacet, FilterSpec, PriceFacet


def format_distance(distance_miles: float | None) -> str:
    """Format a distance like "1.2 miles away".

    Pure function.
    """
    if distance_miles is None:
        return "Distance unknown"
    if distance_miles < 0.1:
        return "Less than 0.1 miles away"
    return f"{distance_miles:.1f} miles away"


def format_spots(spots_remaining: int | None) -> str:
    """Format remaining capacity like "3 spots left".

    Pure function.
    """
    if spots_remaining is None:
        return "Unlimited spots"
    if spots_remaining <= 0:
        return "Full"
    if spots_remaining == 1:
        return "1 spot left"
    return f"{spots_remaining} spots left"


def format_filter_tags(spec: FilterSpec, place_name: str | None = None) -> list[str]:
    """Labels for each active filter, in display order.

    Pure function.

    Args:
        spec: Active filter
        place_name: Name of the reference location, if one was chosen

    Returns:
        Tag labels such as ["Today", "Free", "3-5 years", "Nearby (<2 miles)"]
    """
    tags = []

    if spec.date is not DateFacet.ANY:
        tags.append(spec.date.label)
    if spec.price is not PriceFacet.ANY:
        tags.append(spec.price.label)
    if spec.age_range is not None:
        tags.append(spec.age_range)
    if spec.distance is not DistanceFacet.ANY:
        label = spec.distance.label
        if place_name:
            label = f"{label} of {place_name}"
        tags.append(label)
    if spec.search_text.strip():
        tags.append(f'"{spec.search_text.strip()}"')

    return tags
