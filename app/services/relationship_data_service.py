"""
Supabase-backed data provider for relationship network analysis.

Each contract query maps to a PostgreSQL function (see
``sql/relationship_network_functions.sql``) called through Supabase RPC.
Result rows are normalized with pandas before being handed to the engine.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from app.core.database import DatabaseManager, db_manager
from app.core.exceptions import DatabaseError
from network_analysis.exceptions import DataProviderError
from network_analysis.models import (
    ActiveMember,
    DirectionalFlow,
    PairAggregate,
    RelationshipAggregate,
)
from network_analysis.provider import RelationshipDataProvider

logger = logging.getLogger(__name__)


class SupabaseRelationshipProvider(RelationshipDataProvider):
    """
    Data provider reading transaction aggregates from Supabase.

    Every failure, including malformed rows, surfaces as DataProviderError so
    that an analysis is never computed from a silently empty snapshot.
    """

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        self.db_manager = database_manager or db_manager

    async def get_direct_relationships(
        self, user_id: str, limit: int
    ) -> List[RelationshipAggregate]:
        df = await self._fetch(
            "get_direct_relationships", {"p_user_id": user_id, "p_limit": limit}
        )
        if df.empty:
            return []
        if "user_id" not in df.columns:
            df["user_id"] = user_id
        return self._to_relationship_aggregates(df, "get_direct_relationships")

    async def get_indirect_relationships(
        self,
        user_id: str,
        exclude_ids: Sequence[str],
        min_transactions: int,
        limit: int,
    ) -> List[RelationshipAggregate]:
        df = await self._fetch(
            "get_indirect_relationships",
            {
                "p_user_id": user_id,
                "p_direct_ids": list(exclude_ids),
                "p_min_transactions": min_transactions,
                "p_limit": limit,
            },
        )
        if df.empty:
            return []
        return self._to_relationship_aggregates(df, "get_indirect_relationships")

    async def get_guild_active_members(
        self, guild_id: str, window_days: int, min_usage: int, limit: int
    ) -> List[ActiveMember]:
        df = await self._fetch(
            "get_guild_active_members",
            {
                "p_guild_id": guild_id,
                "p_window_days": window_days,
                "p_min_usage": min_usage,
                "p_limit": limit,
            },
        )
        if df.empty:
            return []
        df = self._standardize(
            df, "get_guild_active_members", ids=["user_id"], counts=["usage_count"]
        )
        return [
            ActiveMember(user_id=row["user_id"], usage_count=int(row["usage_count"]))
            for row in df.to_dict("records")
        ]

    async def get_member_transaction_matrix(
        self, guild_id: str, member_ids: Sequence[str]
    ) -> List[PairAggregate]:
        if not member_ids:
            return []
        df = await self._fetch(
            "get_member_transaction_matrix",
            {"p_guild_id": guild_id, "p_member_ids": list(member_ids)},
        )
        if df.empty:
            return []
        df = self._standardize(
            df,
            "get_member_transaction_matrix",
            ids=["sender_id", "receiver_id"],
            counts=["transaction_count"],
            amounts=["total_amount"],
        )
        return [
            PairAggregate(
                sender_id=row["sender_id"],
                receiver_id=row["receiver_id"],
                transaction_count=int(row["transaction_count"]),
                total_amount=float(row["total_amount"]),
            )
            for row in df.to_dict("records")
        ]

    async def get_directional_flows(
        self, user_id: str, related_user_ids: Sequence[str]
    ) -> List[DirectionalFlow]:
        if not related_user_ids:
            return []
        df = await self._fetch(
            "get_directional_flows",
            {"p_user_id": user_id, "p_related_ids": list(related_user_ids)},
        )
        if df.empty:
            return []
        df = self._standardize(
            df,
            "get_directional_flows",
            ids=["related_user_id"],
            counts=["sent_count", "received_count"],
            amounts=["sent_amount", "received_amount"],
        )
        return [
            DirectionalFlow(
                related_user_id=row["related_user_id"],
                sent_amount=float(row["sent_amount"]),
                received_amount=float(row["received_amount"]),
                sent_count=int(row["sent_count"]),
                received_count=int(row["received_count"]),
            )
            for row in df.to_dict("records")
        ]

    async def _fetch(self, function_name: str, params: Dict[str, Any]) -> pd.DataFrame:
        try:
            rows = await self.db_manager.call_function(function_name, params)
        except DatabaseError as e:
            raise DataProviderError(e.message, operation=function_name) from e

        logger.info(f"{function_name} returned {len(rows)} rows")
        return pd.DataFrame(rows)

    def _to_relationship_aggregates(
        self, df: pd.DataFrame, operation: str
    ) -> List[RelationshipAggregate]:
        df = self._standardize(
            df,
            operation,
            ids=["user_id", "related_user_id"],
            counts=["transaction_count"],
            amounts=["total_amount", "avg_amount"],
            timestamps=["first_transaction", "last_transaction"],
        )
        return [
            RelationshipAggregate(
                user_id=row["user_id"],
                related_user_id=row["related_user_id"],
                transaction_count=int(row["transaction_count"]),
                total_amount=float(row["total_amount"]),
                avg_amount=float(row["avg_amount"]),
                first_transaction=row["first_transaction"],
                last_transaction=row["last_transaction"],
            )
            for row in df.to_dict("records")
        ]

    def _standardize(
        self,
        df: pd.DataFrame,
        operation: str,
        ids: Sequence[str] = (),
        counts: Sequence[str] = (),
        amounts: Sequence[str] = (),
        timestamps: Sequence[str] = (),
    ) -> pd.DataFrame:
        """
        Coerce RPC result columns to the types the engine expects.

        Args:
            df: Raw DataFrame built from RPC rows
            operation: Provider operation, used in error messages
            ids: Identifier columns, cast to str
            counts: Count columns, cast to int with missing values as 0
            amounts: Amount columns, cast to float with missing values as 0
            timestamps: Timestamp columns, parsed as UTC datetimes

        Returns:
            Standardized copy of the DataFrame

        Raises:
            DataProviderError: If a required column is missing
        """
        required = list(ids) + list(counts)
        missing = [column for column in required if column not in df.columns]
        if missing:
            raise DataProviderError(
                f"{operation} returned rows without columns: {missing}",
                operation=operation,
            )

        df = df.copy()
        for column in ids:
            df[column] = df[column].astype(str)
        for column in counts:
            df[column] = (
                pd.to_numeric(df[column], errors="coerce").fillna(0).astype(int)
            )
        for column in amounts:
            if column not in df.columns:
                df[column] = 0.0
            df[column] = pd.to_numeric(df[column], errors="coerce").fillna(0.0).astype(float)
        for column in timestamps:
            if column not in df.columns:
                df[column] = None
            parsed = pd.to_datetime(df[column], utc=True, errors="coerce")
            df[column] = pd.Series(
                [None if pd.isna(value) else value.to_pydatetime() for value in parsed],
                index=df.index,
                dtype=object,
            )
        return df


relationship_provider = SupabaseRelationshipProvider()


async def get_relationship_provider() -> RelationshipDataProvider:
    """
    Dependency injection function for FastAPI.

    Returns:
        RelationshipDataProvider instance
    """
    return relationship_provider
