"""
Analysis service orchestration layer for the relationship network API.
Coordinates between the Supabase data provider and the network analysis engine.
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from fastapi import Depends

from app.core.config import settings
from app.core.exceptions import (
    APIException,
    AnalysisError,
    ValidationError,
    from_analysis_exception,
)
from app.services.relationship_data_service import (
    get_relationship_provider,
    relationship_provider,
)
from network_analysis.exceptions import NetworkAnalysisError
from network_analysis.models import GuildActivity
from network_analysis.orchestrator import NetworkAnalysisOrchestrator
from network_analysis.provider import RelationshipDataProvider

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Orchestration service that coordinates between data access and the analysis engine.

    This service handles:
    - Building the orchestrator from application settings
    - Converting request payloads into engine inputs
    - Translating engine failures into API exceptions
    """

    def __init__(
        self,
        provider: Optional[RelationshipDataProvider] = None,
        orchestrator: Optional[NetworkAnalysisOrchestrator] = None,
    ):
        self.provider = provider or relationship_provider
        self.orchestrator = orchestrator or NetworkAnalysisOrchestrator(
            provider=self.provider,
            timeout_seconds=settings.analysis_timeout_seconds,
            max_cycle_length=settings.max_cycle_length,
        )

    async def analyze_relationship_network(
        self,
        user_id: str,
        top_guilds: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Run the full relationship network analysis for one account.

        Args:
            user_id: Account under analysis
            top_guilds: Optional guild usage entries with guild_id and usage_count

        Returns:
            Serialized RelationshipNetwork

        Raises:
            ServiceUnavailableError: If the data provider fails
            AnalysisTimeoutError: If the analysis exceeds its deadline
            AnalysisError: If analysis processing fails
        """
        try:
            network = await self.orchestrator.analyze(
                user_id, top_guilds=self._to_guild_activity(top_guilds)
            )
            result = network.to_dict()

            logger.info(
                f"Relationship network for {user_id}: "
                f"{len(result['direct_connections'])} direct connections, "
                f"{len(result['suspicious_clusters'])} suspicious clusters"
            )
            return result

        except APIException:
            raise
        except NetworkAnalysisError as e:
            logger.error(f"Relationship network analysis failed for {user_id}: {e.message}")
            raise from_analysis_exception(e) from e
        except Exception as e:
            logger.error(f"Relationship network analysis failed for {user_id}: {str(e)}")
            raise AnalysisError(
                f"Relationship network analysis failed: {str(e)}",
                analysis_type="relationship_network",
            ) from e

    async def analyze_guild_correlations(
        self, user_id: str, guilds: Sequence[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Correlate member activity in the account's most used guilds.

        Args:
            user_id: Account whose guilds are analyzed
            guilds: Guild usage entries with guild_id and usage_count

        Returns:
            Dictionary with the per-guild correlations
        """
        try:
            correlations = await self.orchestrator.guild_analyzer.analyze(
                user_id, self._to_guild_activity(guilds)
            )
            return {
                "user_id": user_id,
                "guild_correlations": [asdict(c) for c in correlations],
                "guilds_analyzed": len(correlations),
            }

        except APIException:
            raise
        except NetworkAnalysisError as e:
            logger.error(f"Guild correlation analysis failed for {user_id}: {e.message}")
            raise from_analysis_exception(e) from e
        except Exception as e:
            logger.error(f"Guild correlation analysis failed for {user_id}: {str(e)}")
            raise AnalysisError(
                f"Guild correlation analysis failed: {str(e)}",
                analysis_type="guild_correlation",
            ) from e

    def get_detection_thresholds(self) -> Dict[str, Any]:
        """Return the detection threshold contract applied by the orchestrator."""
        return self.orchestrator.thresholds.to_dict()

    def _to_guild_activity(
        self, guilds: Optional[Sequence[Dict[str, Any]]]
    ) -> List[GuildActivity]:
        if not guilds:
            return []
        if len(guilds) > settings.max_guilds_per_request:
            raise ValidationError(
                f"At most {settings.max_guilds_per_request} guilds can be analyzed per request",
                field_errors={"guilds": f"{len(guilds)} guilds supplied"},
            )
        return [
            GuildActivity(guild_id=str(g["guild_id"]), usage_count=int(g["usage_count"]))
            for g in guilds
        ]


analysis_service = AnalysisService()


async def get_analysis_service(
    provider: RelationshipDataProvider = Depends(get_relationship_provider),
) -> AnalysisService:
    """
    Dependency injection function for FastAPI.

    Args:
        provider: Relationship data provider resolved for the request

    Returns:
        AnalysisService instance backed by that provider
    """
    if provider is analysis_service.provider:
        return analysis_service
    return AnalysisService(provider=provider)
