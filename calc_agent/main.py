from typing import Optional

from fastapi import FastAPI

from calc_agent.config import AgentSettings
from calc_agent.routers import calculations, health
from calc_agent.services.limiter_service import LimiterService
from calc_agent.services.orchestrator_service import OrchestratorService


def create_app(
    settings: AgentSettings,
    limiter: Optional[LimiterService] = None,
    orchestrator: Optional[OrchestratorService] = None,
) -> FastAPI:
    limiter = limiter or LimiterService(settings.concurrency)
    orchestrator = orchestrator or OrchestratorService()

    app = FastAPI(title="Calculation Agent")
    app.include_router(calculations.build_router(settings, limiter, orchestrator))
    app.include_router(health.build_router(limiter))
    return app
