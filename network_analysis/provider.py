"""
Data provider contract for relationship network analysis.

The engine never talks to a database directly. Implementations fetch a
snapshot of transaction aggregates and must raise ``DataProviderError`` on
failure: returning an empty list for a failed query would make an account look
clean, which is worse than a visible error.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, List, Sequence, TypeVar

from network_analysis.exceptions import DataProviderError
from network_analysis.models import (
    ActiveMember,
    DirectionalFlow,
    PairAggregate,
    RelationshipAggregate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RelationshipDataProvider(ABC):
    """Asynchronous source of transaction aggregates."""

    @abstractmethod
    async def get_direct_relationships(
        self, user_id: str, limit: int
    ) -> List[RelationshipAggregate]:
        """
        Fetch one aggregate per counterparty of ``user_id``.

        Rows carry ``user_id`` as the target and are ordered by transaction
        count descending, at most ``limit`` rows.
        """

    @abstractmethod
    async def get_indirect_relationships(
        self,
        user_id: str,
        exclude_ids: Sequence[str],
        min_transactions: int,
        limit: int,
    ) -> List[RelationshipAggregate]:
        """
        Fetch second-degree aggregates.

        Each row is the aggregate between a direct counterparty (``user_id``
        of the row) and an account that is neither the target nor in
        ``exclude_ids`` (``related_user_id`` of the row).
        """

    @abstractmethod
    async def get_guild_active_members(
        self, guild_id: str, window_days: int, min_usage: int, limit: int
    ) -> List[ActiveMember]:
        """Members with at least ``min_usage`` activity events in the window."""

    @abstractmethod
    async def get_member_transaction_matrix(
        self, guild_id: str, member_ids: Sequence[str]
    ) -> List[PairAggregate]:
        """Directed pairwise aggregates where both sides are in ``member_ids``."""

    @abstractmethod
    async def get_directional_flows(
        self, user_id: str, related_user_ids: Sequence[str]
    ) -> List[DirectionalFlow]:
        """Sent/received totals between ``user_id`` and each related account."""


async def guarded_fetch(operation: str, awaitable: Awaitable[T]) -> T:
    """
    Await a provider call, converting unexpected failures to DataProviderError.

    Args:
        operation: Name of the provider operation, recorded on the error
        awaitable: The pending provider call

    Returns:
        Whatever the provider call returned

    Raises:
        DataProviderError: If the provider call fails for any reason
    """
    try:
        return await awaitable
    except DataProviderError:
        raise
    except Exception as e:
        logger.error(f"Data provider operation {operation} failed: {str(e)}")
        raise DataProviderError(
            f"Data provider operation {operation} failed: {str(e)}", operation=operation
        ) from e
