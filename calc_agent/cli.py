"""
Calculation Agent CLI.

  calc-agent -c "<command>" -h <host> [-t <token>] <calculation-id>
      run one calculation in the current directory and exit

  calc-agent -c "<command>" [-h <host>] [-t <token>] [-concurrency N]
      serve POST / on port 8080 and run a calculation per request
"""

import logging
import os
import sys

import click
import uvicorn

from calc_agent.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_S,
    DEFAULT_TOKEN,
    AgentSettings,
)
from calc_agent.logging_setup import console, setup_logging
from calc_agent.main import create_app
from calc_agent.services.orchestrator_service import OrchestratorService

logger = logging.getLogger(__name__)


def serve(settings: AgentSettings) -> None:
    app = create_app(settings)
    logger.info("Starting server on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


@click.command()
@click.option("-c", "command", default="", help="Command to execute")
@click.option("-h", "host", default=DEFAULT_HOST, help="Host of calling app")
@click.option("-t", "token", default=DEFAULT_TOKEN, help="Security token")
@click.option("-concurrency", "concurrency", type=click.IntRange(min=1), default=DEFAULT_CONCURRENCY,
              help="Concurrency if http server")
@click.option("-timeout", "timeout", type=click.IntRange(min=0), default=DEFAULT_TIMEOUT_S, help="Timeout in s")
@click.option("-port", "port", type=int, default=DEFAULT_PORT, help="Port if http server")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.argument("calculation_id", required=False)
def cli(command, host, token, concurrency, timeout, port, verbose, calculation_id):
    """Fetch a calculation, run COMMAND against its inputs and upload the outputs."""
    setup_logging(verbose)
    workdir = os.getcwd()
    logger.info("Calculation Agent")
    logger.info("Running in %s", workdir)
    logger.info("Calculation command is %s", command)
    if not command:
        raise click.UsageError("No command provided")

    settings = AgentSettings(
        command=command,
        workdir=workdir,
        host=host,
        token=token,
        concurrency=concurrency,
        timeout=timeout,
        port=port,
    )

    if calculation_id:
        if not host:
            raise click.UsageError("No host provided")
        OrchestratorService().run_calculation(command, host, token, calculation_id, workdir, timeout)
    else:
        serve(settings)


def main():
    """Main entry point."""
    try:
        cli()
    except Exception as e:
        logger.debug("Calculation agent failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
