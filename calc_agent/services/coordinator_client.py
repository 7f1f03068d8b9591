import logging
from typing import Dict, Optional

import requests
from pydantic import ValidationError

from calc_agent.config import (
    CALCULATION_LOGS_PATH,
    HTTP_CONNECT_TIMEOUT_S,
    HTTP_READ_TIMEOUT_S,
    REMOTE_CALCULATION_PATH,
)
from calc_agent.errors import FormatError, NetworkError, ProtocolError
from calc_agent.schemas.calculations import CalculationContext, CalculationResponse

logger = logging.getLogger(__name__)


class CoordinatorClient:
    """Talks to the coordinating host that owns the calculations."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.timeout = (HTTP_CONNECT_TIMEOUT_S, HTTP_READ_TIMEOUT_S)

    def _headers(self, token: str, **extra: str) -> Dict[str, str]:
        h = {"Authorization": f"Bearer {token}"}
        h.update(extra)
        return h

    def _url(self, host: str, path: str, calculation_id: str) -> str:
        return host.rstrip("/") + path + calculation_id

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {e}")

        if resp.status_code != 200:
            raise ProtocolError(
                resp.status_code,
                f"Coordinator returned HTTP {resp.status_code} for {method} {url}",
                {"body": resp.text[:1000]},
            )
        return resp

    def fetch_context(self, host: str, token: str, calculation_id: str) -> CalculationContext:
        url = self._url(host, REMOTE_CALCULATION_PATH, calculation_id)
        resp = self._send("GET", url, headers=self._headers(token, Accept="application/json"))
        try:
            return CalculationContext.model_validate_json(resp.content)
        except ValidationError as e:
            raise FormatError(f"Calculation context of {calculation_id} is malformed: {e}")

    def submit_result(self, host: str, token: str, calculation_id: str, response: CalculationResponse) -> None:
        url = self._url(host, REMOTE_CALCULATION_PATH, calculation_id)
        self._send(
            "POST",
            url,
            data=response.model_dump_json(by_alias=True).encode("utf-8"),
            headers=self._headers(token, **{"Content-Type": "application/json"}),
        )

    def send_logs(self, host: str, token: str, calculation_id: str, text: str) -> None:
        url = self._url(host, CALCULATION_LOGS_PATH, calculation_id)
        self._send(
            "POST",
            url,
            data=text.encode("utf-8"),
            headers=self._headers(token, **{"Content-Type": "text/plain"}),
        )
