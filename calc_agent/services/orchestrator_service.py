import logging
import time
from pathlib import Path
from typing import Optional, Union

from calc_agent.config import MTIME_SETTLE_S
from calc_agent.schemas.calculations import CalculationResponse
from calc_agent.services.coordinator_client import CoordinatorClient
from calc_agent.services.input_materializer import materialize_inputs
from calc_agent.services.process_runner import ProcessRunner
from calc_agent.services.result_packager import package_result

logger = logging.getLogger(__name__)


class OrchestratorService:
    def __init__(self, client: Optional[CoordinatorClient] = None, runner: Optional[ProcessRunner] = None):
        self.client = client or CoordinatorClient()
        self.runner = runner or ProcessRunner()

    def run_calculation(
        self,
        command: str,
        host: str,
        token: str,
        calculation_id: str,
        workdir: Union[str, Path],
        timeout: float,
    ) -> CalculationResponse:
        """
        Run one calculation end to end in workdir.

        Any stage failure propagates and the remaining stages are skipped. A
        failing or timed out command is not a failure: its exit status and
        the timeout notice end up in the uploaded errors.
        """
        logger.info("Preparing calculation %s", calculation_id)
        host = host.rstrip("/")

        logger.info("Fetching inputs of calculation %s", calculation_id)
        context = self.client.fetch_context(host, token, calculation_id)

        logger.info("Expanding inputs of calculation %s", calculation_id)
        materialize_inputs(workdir, context)

        since_ns = time.time_ns()
        # file timestamps come from a coarser clock than time_ns()
        time.sleep(MTIME_SETTLE_S)

        logger.info("Running calculation %s", calculation_id)
        result = self.runner.run(command, workdir, timeout)

        logger.info("Packaging results of calculation %s", calculation_id)
        response = package_result(workdir, since_ns, result.stdout, result.stderr)

        logger.info("Uploading results of calculation %s", calculation_id)
        self.client.submit_result(host, token, calculation_id, response)
        logger.info("Completing calculation %s", calculation_id)
        return response
