"""
Relationship strength scoring.

Closeness between two accounts is a bounded 0-100 integer made of three
independently capped terms: transaction frequency (40), total amount (30) and
relationship duration (30).
"""

import math
from datetime import datetime, timezone
from typing import Optional

from network_analysis.models import RelationshipAggregate, UserRelationship
from network_analysis.thresholds import DEFAULT_THRESHOLDS, StrengthThresholds

SECONDS_PER_DAY = 86400.0


def _finite(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _capped_term(value: float, divisor: float, weight: float) -> float:
    if divisor <= 0:
        return 0.0
    return min(max(value / divisor * weight, 0.0), weight)


def to_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(first: Optional[datetime], last: Optional[datetime]) -> float:
    """Fractional days from ``first`` to ``last``; 0 when either is missing."""
    if first is None or last is None:
        return 0.0
    return (to_utc(last) - to_utc(first)).total_seconds() / SECONDS_PER_DAY


def calculate_relationship_strength(
    transaction_count: int,
    total_amount: float,
    first_transaction: Optional[datetime],
    last_transaction: Optional[datetime],
    thresholds: StrengthThresholds = DEFAULT_THRESHOLDS.strength,
) -> int:
    """
    Score how close two accounts are.

    Args:
        transaction_count: Number of transactions between the pair
        total_amount: Summed transaction amount
        first_transaction: Timestamp of the earliest transaction
        last_transaction: Timestamp of the latest transaction
        thresholds: Divisors and weights of the three terms

    Returns:
        Integer score in [0, max_score], rounded half up
    """
    frequency = _capped_term(
        _finite(transaction_count),
        thresholds.frequency_divisor,
        thresholds.frequency_weight,
    )
    amount = _capped_term(
        _finite(total_amount), thresholds.amount_divisor, thresholds.amount_weight
    )
    duration = _capped_term(
        _finite(days_between(first_transaction, last_transaction)),
        thresholds.duration_divisor_days,
        thresholds.duration_weight,
    )

    score = int(math.floor(frequency + amount + duration + 0.5))
    return min(max(score, 0), thresholds.max_score)


def score_relationship(
    aggregate: RelationshipAggregate,
    thresholds: StrengthThresholds = DEFAULT_THRESHOLDS.strength,
) -> UserRelationship:
    return UserRelationship(
        user_id=aggregate.user_id,
        related_user_id=aggregate.related_user_id,
        transaction_count=aggregate.transaction_count,
        total_amount=aggregate.total_amount,
        avg_amount=aggregate.avg_amount,
        first_transaction=aggregate.first_transaction,
        last_transaction=aggregate.last_transaction,
        relationship_strength=calculate_relationship_strength(
            aggregate.transaction_count,
            aggregate.total_amount,
            aggregate.first_transaction,
            aggregate.last_transaction,
            thresholds,
        ),
    )
