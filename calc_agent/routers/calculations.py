import asyncio
import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor

from fastapi import APIRouter, Request, Response
from pydantic import ValidationError

from calc_agent.config import TEMP_DIR_PREFIX, AgentSettings
from calc_agent.errors import FormatError
from calc_agent.schemas.calculations import CalculationPayload
from calc_agent.services.limiter_service import LimiterService
from calc_agent.services.orchestrator_service import OrchestratorService

logger = logging.getLogger(__name__)

NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


def parse_trigger(body: str, settings: AgentSettings) -> CalculationPayload:
    """A trigger body is either a bare calculation id or a {id, host, token} object."""
    if body.startswith("{"):
        try:
            calc = CalculationPayload.model_validate_json(body)
        except ValidationError as e:
            raise FormatError(f"Invalid calculation payload: {e}")
        return CalculationPayload(
            id=calc.id,
            host=calc.host or settings.host,
            token=calc.token or settings.token,
        )
    calculation_id = body.strip()
    if not calculation_id:
        raise FormatError("Empty calculation id")
    return CalculationPayload(id=calculation_id, host=settings.host, token=settings.token)


def build_router(settings: AgentSettings, limiter: LimiterService, orchestrator: OrchestratorService) -> APIRouter:
    router = APIRouter()
    # jobs get their own threads, sized to the gate, so they neither share
    # the server's default threadpool cap nor starve the other routes
    jobs = ThreadPoolExecutor(max_workers=limiter.limit, thread_name_prefix="calc-job")

    def handle(body: str) -> int:
        with limiter.slot():
            try:
                workdir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=settings.workdir)
            except OSError:
                logger.exception("Could not create a working directory in %s", settings.workdir)
                return 500
            try:
                calc = parse_trigger(body, settings)
                orchestrator.run_calculation(
                    settings.command, calc.host, calc.token, calc.id, workdir, settings.timeout
                )
            except Exception:
                logger.exception("Calculation failed")
                return 500
            finally:
                shutil.rmtree(workdir, ignore_errors=True)
        return 200

    @router.post("/")
    async def trigger(request: Request) -> Response:
        body = (await request.body()).decode("utf-8", errors="replace")
        status = await asyncio.wrap_future(jobs.submit(handle, body))
        return Response(status_code=status)

    @router.api_route("/", methods=NON_POST_METHODS, include_in_schema=False)
    def not_found() -> Response:
        return Response(status_code=404)

    return router
