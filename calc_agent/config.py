import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

# Coordinator defaults, overridable per request (service mode) or by CLI flags
DEFAULT_HOST = os.getenv("CALC_AGENT_HOST", "")
DEFAULT_TOKEN = os.getenv("CALC_AGENT_TOKEN", "")

DEFAULT_CONCURRENCY = int(os.getenv("CALC_AGENT_CONCURRENCY", "4"))
DEFAULT_TIMEOUT_S = int(os.getenv("CALC_AGENT_TIMEOUT_S", "3600"))
DEFAULT_PORT = int(os.getenv("CALC_AGENT_PORT", "8080"))

HTTP_CONNECT_TIMEOUT_S = float(os.getenv("HTTP_CONNECT_TIMEOUT_S", "3.0"))
HTTP_READ_TIMEOUT_S = float(os.getenv("HTTP_READ_TIMEOUT_S", "30.0"))

REMOTE_CALCULATION_PATH = "/api/calculations/remote/"
CALCULATION_LOGS_PATH = "/api/calculations/logs/"

TIMEOUT_MESSAGE = "Command timed out"
TEMP_DIR_PREFIX = "calc"

# Pause between recording the start time and launching the command
MTIME_SETTLE_S = float(os.getenv("CALC_AGENT_MTIME_SETTLE_S", "0.02"))


@dataclass(frozen=True)
class AgentSettings:
    command: str
    workdir: str
    host: str = DEFAULT_HOST
    token: str = DEFAULT_TOKEN
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: int = DEFAULT_TIMEOUT_S
    port: int = DEFAULT_PORT
