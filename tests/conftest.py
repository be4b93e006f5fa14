"""
Pytest configuration and fixtures for the relationship network tests.
Provides an in-memory data provider and relationship factories.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Set

import pytest

from network_analysis.exceptions import DataProviderError
from network_analysis.models import (
    ActiveMember,
    DirectionalFlow,
    PairAggregate,
    RelationshipAggregate,
)
from network_analysis.provider import RelationshipDataProvider
from network_analysis.relationship_strength import score_relationship


AS_OF = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_aggregate(
    user_id: str,
    related_user_id: str,
    transaction_count: int = 10,
    total_amount: float = 5000.0,
    first_days_ago: Optional[float] = 30.0,
    last_days_ago: Optional[float] = 1.0,
    as_of: datetime = AS_OF,
) -> RelationshipAggregate:
    """Build a relationship aggregate with timestamps relative to ``as_of``."""
    return RelationshipAggregate(
        user_id=user_id,
        related_user_id=related_user_id,
        transaction_count=transaction_count,
        total_amount=total_amount,
        avg_amount=total_amount / transaction_count if transaction_count else 0.0,
        first_transaction=(
            as_of - timedelta(days=first_days_ago) if first_days_ago is not None else None
        ),
        last_transaction=(
            as_of - timedelta(days=last_days_ago) if last_days_ago is not None else None
        ),
    )


def make_relationship(*args, **kwargs):
    """Build a scored UserRelationship."""
    return score_relationship(make_aggregate(*args, **kwargs))


class FakeRelationshipProvider(RelationshipDataProvider):
    """In-memory provider with optional failure injection per operation."""

    def __init__(
        self,
        direct: Optional[Dict[str, List[RelationshipAggregate]]] = None,
        indirect: Optional[Dict[str, List[RelationshipAggregate]]] = None,
        flows: Optional[Dict[str, List[DirectionalFlow]]] = None,
        guild_members: Optional[Dict[str, List[ActiveMember]]] = None,
        guild_pairs: Optional[Dict[str, List[PairAggregate]]] = None,
        fail_on: Optional[Set[str]] = None,
        error: Optional[Exception] = None,
    ):
        self.direct = direct or {}
        self.indirect = indirect or {}
        self.flows = flows or {}
        self.guild_members = guild_members or {}
        self.guild_pairs = guild_pairs or {}
        self.fail_on = fail_on or set()
        self.error = error
        self.calls: List[str] = []

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.error or RuntimeError(f"{operation} unavailable")

    async def get_direct_relationships(self, user_id: str, limit: int):
        self._record("get_direct_relationships")
        rows = sorted(
            self.direct.get(user_id, []),
            key=lambda row: row.transaction_count,
            reverse=True,
        )
        return rows[:limit]

    async def get_indirect_relationships(
        self,
        user_id: str,
        exclude_ids: Sequence[str],
        min_transactions: int,
        limit: int,
    ):
        self._record("get_indirect_relationships")
        return list(self.indirect.get(user_id, []))

    async def get_guild_active_members(
        self, guild_id: str, window_days: int, min_usage: int, limit: int
    ):
        self._record("get_guild_active_members")
        return list(self.guild_members.get(guild_id, []))

    async def get_member_transaction_matrix(
        self, guild_id: str, member_ids: Sequence[str]
    ):
        self._record("get_member_transaction_matrix")
        return list(self.guild_pairs.get(guild_id, []))

    async def get_directional_flows(
        self, user_id: str, related_user_ids: Sequence[str]
    ):
        self._record("get_directional_flows")
        return list(self.flows.get(user_id, []))


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def empty_provider():
    return FakeRelationshipProvider()


@pytest.fixture
def network_provider():
    """
    Target 100 with direct partners 200 (high amount) and 300, and a
    second-degree account 400 reached through 200.
    """
    return FakeRelationshipProvider(
        direct={
            "100": [
                make_aggregate("100", "200", transaction_count=60, total_amount=2_000_000),
                make_aggregate("100", "300", transaction_count=5, total_amount=1000),
            ]
        },
        indirect={
            "100": [
                make_aggregate("200", "400", transaction_count=4, total_amount=800),
                make_aggregate("200", "300", transaction_count=9, total_amount=900),
                make_aggregate("300", "500", transaction_count=2, total_amount=100),
            ]
        },
    )


@pytest.fixture
def failing_provider():
    return FakeRelationshipProvider(
        direct={"100": [make_aggregate("100", "200")]},
        fail_on={"get_indirect_relationships"},
    )


@pytest.fixture
def provider_error():
    return DataProviderError("connection refused", operation="get_direct_relationships")
