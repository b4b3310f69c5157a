"""
Half-star rating helpers.

Readers rate books from 0.5 to 5 stars in half-star steps. The database
stores the rating on a ten-point integer scale (1..10).
"""
from typing import Optional

MIN_RATING = 0.5
MAX_RATING = 5.0
RATING_STEPS = [0.5 + index * 0.5 for index in range(10)]
RATING_ERROR = "Rating must be between 0.5 and 5 in half-star steps"


class InvalidRating(ValueError):
    pass


def stored_to_stars(value: Optional[int]) -> Optional[float]:
    """Convert a stored ten-point rating to the five-star scale used for display."""
    if value is None:
        return None
    return value / 2


def normalize_rating(value: Optional[float]) -> Optional[float]:
    """Coerce a rating of unknown scale to five stars; values above 5 are ten-point."""
    if value is None:
        return None
    return value / 2 if value > 5 else value


def denormalize_rating(value: Optional[float]) -> Optional[int]:
    """Convert a five-star rating to the stored ten-point scale."""
    if value is None:
        return None
    return round(value * 2)


def is_valid_half_step(value: float) -> bool:
    return float(value * 2).is_integer()


def parse_rating(raw) -> Optional[float]:
    """
    Parse a rating submitted by a form or JSON body.

    Args:
        raw: None, an empty string, a number or a numeric string

    Returns:
        The rating on the five-star scale, or None when no rating was given

    Raises:
        InvalidRating: the value is not a number, out of range or not a half step
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidRating(RATING_ERROR)
    if value < MIN_RATING or value > MAX_RATING or not is_valid_half_step(value):
        raise InvalidRating(RATING_ERROR)
    return value


def clamp_rating(value: float) -> float:
    return max(0.0, min(MAX_RATING, value))


def star_bar(value: float) -> str:
    # Full stars, at most one half star, then empty stars up to five
    rating = clamp_rating(value)
    full = int(rating)
    half = 1 if rating - full >= 0.5 else 0
    empty = 5 - full - half
    return "★" * full + "⯪" * half + "☆" * empty
