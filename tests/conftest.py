import sys
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from calc_agent.config import AgentSettings
from calc_agent.main import create_app
from calc_agent.services.limiter_service import LimiterService
from calc_agent.services.orchestrator_service import OrchestratorService

HOST = "http://coordinator.test"
TOKEN = "secret-token"

needs_bash = pytest.mark.skipif(sys.platform.startswith("win"), reason="runs commands through bash")


def remote_url(calculation_id: str) -> str:
    return f"{HOST}/api/calculations/remote/{calculation_id}"


@pytest.fixture
def settings(tmp_path):
    return AgentSettings(
        command="true",
        workdir=str(tmp_path),
        host=HOST,
        token=TOKEN,
        concurrency=2,
        timeout=30,
    )


@pytest.fixture
def limiter(settings):
    return LimiterService(settings.concurrency)


@pytest.fixture
def orchestrator():
    return MagicMock(spec=OrchestratorService)


@pytest.fixture
def client(settings, limiter, orchestrator):
    return TestClient(create_app(settings, limiter=limiter, orchestrator=orchestrator))
