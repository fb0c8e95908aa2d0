"""Satisfaction semantics and metrics computation"""
import math
from enum import Enum
from typing import Dict, Iterable, List


class SatisfactionLevel(str, Enum):
    """Satisfaction levels based on star ratings"""
    VERY_DISSATISFIED = "VERY_DISSATISFIED"
    DISSATISFIED = "DISSATISFIED"
    NEUTRAL = "NEUTRAL"
    SATISFIED = "SATISFIED"
    VERY_SATISFIED = "VERY_SATISFIED"


# Rating to satisfaction level mapping
RATING_TO_SATISFACTION = {
    1: SatisfactionLevel.VERY_DISSATISFIED,
    2: SatisfactionLevel.DISSATISFIED,
    3: SatisfactionLevel.NEUTRAL,
    4: SatisfactionLevel.SATISFIED,
    5: SatisfactionLevel.VERY_SATISFIED,
}


def get_satisfaction_level(rating: int) -> SatisfactionLevel:
    """
    Convert star rating to satisfaction level.

    Args:
        rating: Star rating (1-5)

    Returns:
        SatisfactionLevel enum
    """
    return RATING_TO_SATISFACTION.get(rating, SatisfactionLevel.NEUTRAL)


def rating_distribution(ratings: Iterable[int]) -> Dict[str, int]:
    """Count of each star value, keys "1".."5"."""
    counts = {str(i): 0 for i in range(1, 6)}
    for rating in ratings:
        if 1 <= rating <= 5:
            counts[str(rating)] += 1
    return counts


def employee_score(average_rating: float, total_reviews: int) -> float:
    """Average weighted by review volume, so one 5-star review does not top the board."""
    return round(average_rating * math.log(total_reviews + 1), 2)


def compute_metrics(ratings: List[int]) -> Dict:
    """
    Compute satisfaction metrics from a list of star ratings.

    Metrics computed:
    - average_rating: Mean of all ratings
    - satisfaction_index: Normalized score (0-100)
    - total_feedbacks: Count of ratings
    - distribution: Percentage distribution of each star rating
    - satisfaction_levels: Count by satisfaction level

    Args:
        ratings: List of 1-5 star ratings

    Returns:
        Dictionary with computed metrics
    """
    # Default empty metrics
    empty_metrics = {
        "average_rating": 0.0,
        "satisfaction_index": 0.0,
        "total_feedbacks": 0,
        "distribution": {"5_star": 0.0, "4_star": 0.0, "3_star": 0.0, "2_star": 0.0, "1_star": 0.0},
        "satisfaction_levels": {
            "VERY_SATISFIED": 0, "SATISFIED": 0, "NEUTRAL": 0, "DISSATISFIED": 0, "VERY_DISSATISFIED": 0
        }
    }

    if not ratings:
        return empty_metrics

    total = len(ratings)
    avg_rating = sum(ratings) / total

    # Count ratings
    rating_counts = {i: ratings.count(i) for i in range(1, 6)}

    # Distribution (percentage)
    distribution = {f"{i}_star": round((rating_counts[i] / total) * 100, 2) for i in range(5, 0, -1)}

    # Satisfaction levels (matching rating to level)
    satisfaction_counts = {
        RATING_TO_SATISFACTION[i].value: rating_counts[i] for i in range(5, 0, -1)
    }

    return {
        "average_rating": round(avg_rating, 2),
        "satisfaction_index": round((avg_rating / 5) * 100, 2),
        "total_feedbacks": total,
        "distribution": distribution,
        "satisfaction_levels": satisfaction_counts,
    }
