from fastapi import APIRouter

from calc_agent.services.limiter_service import LimiterService


def build_router(limiter: LimiterService) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health():
        return {"ok": True, "in_use": limiter.in_use, "limit": limiter.limit}

    return router
