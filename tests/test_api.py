"""
Tests for the relationship network HTTP API
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from main import app
from app.services.analysis_service import AnalysisService, analysis_service, get_analysis_service
from app.services.relationship_data_service import get_relationship_provider, relationship_provider
from network_analysis.exceptions import AnalysisCancelledError
from network_analysis.models import ActiveMember, PairAggregate
from conftest import FakeRelationshipProvider, make_aggregate


class TimingOutOrchestrator:
    """Stands in for an orchestrator whose analysis overruns its deadline."""

    thresholds = None

    async def analyze(self, target_user_id, top_guilds=None, as_of=None, deadline=None):
        raise AnalysisCancelledError("Analysis deadline exceeded during pagerank", "pagerank")


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def override_service(service):
    app.dependency_overrides[get_analysis_service] = lambda: service


def test_root_describes_the_api(client):
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["endpoints"]["relationship_network"] == "/api/v1/analyze/relationship-network"
    assert "max_cycle_length" in body["limits"]


def test_relationship_network_success(client, network_provider):
    override_service(AnalysisService(provider=network_provider))

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "100"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["target_user_id"] == "100"
    assert [c["related_user_id"] for c in data["direct_connections"]] == ["200", "300"]
    assert [c["cluster_type"] for c in data["suspicious_clusters"]] == ["high_amount"]
    assert body["metadata"]["analysis_type"] == "relationship_network"
    assert body["metadata"]["direct_connection_count"] == 2
    assert "processing_time_ms" in body["metadata"]


def test_relationship_network_with_guilds(client):
    provider = FakeRelationshipProvider(
        direct={"100": [make_aggregate("100", "200")]},
        guild_members={"555": [ActiveMember(u, 15) for u in ["a", "b", "c"]]},
        guild_pairs={
            "555": [PairAggregate("a", "b", 20, 1000), PairAggregate("b", "a", 20, 1000)]
        },
    )
    override_service(AnalysisService(provider=provider))

    response = client.post(
        "/api/v1/analyze/relationship-network",
        json={"user_id": "100", "top_guilds": [{"guild_id": "555", "usage_count": 30}]},
    )

    assert response.status_code == 200
    correlations = response.json()["data"]["guild_correlations"]
    assert [c["guild_id"] for c in correlations] == ["555"]


def test_empty_network_is_a_success(client, empty_provider):
    override_service(AnalysisService(provider=empty_provider))

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "100"}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["direct_connections"] == []
    assert data["network_stats"]["total_connections"] == 0


def test_provider_failure_returns_503(client):
    provider = FakeRelationshipProvider(fail_on={"get_direct_relationships"})
    override_service(AnalysisService(provider=provider))

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "100"}
    )

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "SERVICE_UNAVAILABLE"
    assert body["details"]["service_name"] == "get_direct_relationships"


def test_analysis_timeout_returns_504(client, empty_provider):
    override_service(
        AnalysisService(provider=empty_provider, orchestrator=TimingOutOrchestrator())
    )

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "100"}
    )

    assert response.status_code == 504
    body = response.json()
    assert body["error_code"] == "ANALYSIS_TIMEOUT"
    assert body["details"]["stage"] == "pagerank"


@pytest.mark.parametrize(
    "payload",
    [
        {"user_id": "not-a-snowflake"},
        {"user_id": ""},
        {"user_id": "123456789012345678901"},
        {},
        {
            "user_id": "100",
            "top_guilds": [
                {"guild_id": "1", "usage_count": 1},
                {"guild_id": "1", "usage_count": 2},
            ],
        },
        {"user_id": "100", "top_guilds": [{"guild_id": "1", "usage_count": -1}]},
    ],
)
def test_invalid_requests_return_422(client, empty_provider, payload):
    override_service(AnalysisService(provider=empty_provider))

    response = client.post("/api/v1/analyze/relationship-network", json=payload)

    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_user_id_is_trimmed(client, network_provider):
    override_service(AnalysisService(provider=network_provider))

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "  100 "}
    )

    assert response.status_code == 200
    assert response.json()["data"]["target_user_id"] == "100"


def test_guild_correlations_endpoint(client):
    provider = FakeRelationshipProvider(
        guild_members={"555": [ActiveMember(u, 15) for u in ["a", "b", "c"]]},
    )
    override_service(AnalysisService(provider=provider))

    response = client.post(
        "/api/v1/analyze/guild-correlations",
        json={"user_id": "100", "guilds": [{"guild_id": "555", "usage_count": 30}]},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_id"] == "100"
    assert data["guilds_analyzed"] == 1
    assert data["guild_correlations"][0]["suspicion_score"] == 0


def test_guild_correlations_require_guilds(client, empty_provider):
    override_service(AnalysisService(provider=empty_provider))

    response = client.post(
        "/api/v1/analyze/guild-correlations", json={"user_id": "100", "guilds": []}
    )

    assert response.status_code == 422


def test_detection_thresholds(client, empty_provider):
    override_service(AnalysisService(provider=empty_provider))

    response = client.get("/api/v1/detection-thresholds")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["version"] == "1.0.0"
    assert data["pagerank"]["damping_factor"] == 0.85
    assert data["cluster"]["new_account_score"] == 90


def test_services_health(client):
    response = client.get("/api/v1/health/services")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["available_services"] == body["total_services"]


def test_database_health_reports_uninitialized_database(client):
    response = client.get("/api/v1/health/database")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_relationship_provider_dependency_backs_the_service(client, network_provider):
    app.dependency_overrides[get_relationship_provider] = lambda: network_provider

    response = client.post(
        "/api/v1/analyze/relationship-network", json={"user_id": "100"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["target_user_id"] == "100"
    assert network_provider.calls[0] == "get_direct_relationships"


def test_default_provider_reuses_the_shared_service():
    service = asyncio.run(get_analysis_service(relationship_provider))
    assert service is analysis_service


def test_openapi_names_the_community_algorithm(client):
    description = client.get("/openapi.json").json()["info"]["description"]

    assert "greedy local-move communities" in description
    assert "label-propagation" not in description
