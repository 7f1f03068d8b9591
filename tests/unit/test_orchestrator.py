import json
from unittest.mock import MagicMock

import pytest

from calc_agent.config import TIMEOUT_MESSAGE
from calc_agent.errors import ProtocolError
from calc_agent.schemas.calculations import CalculationContext
from calc_agent.services.coordinator_client import CoordinatorClient
from calc_agent.services.orchestrator_service import OrchestratorService
from calc_agent.services.process_runner import ProcessResult
from conftest import HOST, TOKEN, needs_bash, remote_url


def test_orchestrator_sequences_stages(tmp_path):
    client = MagicMock()
    runner = MagicMock()
    client.fetch_context.return_value = CalculationContext.model_validate({"id": "calc-1", "inputs": {"a": 5}})
    runner.run.return_value = ProcessResult(stdout="ok\n", stderr="exit status 1\n", returncode=1, timed_out=False)

    service = OrchestratorService(client, runner)
    response = service.run_calculation("python model.py", HOST + "/", TOKEN, "calc-1", tmp_path, 60)

    client.fetch_context.assert_called_once_with(HOST, TOKEN, "calc-1")
    runner.run.assert_called_once_with("python model.py", tmp_path, 60)
    client.submit_result.assert_called_once_with(HOST, TOKEN, "calc-1", response)
    assert (tmp_path / "a.json").read_text() == "5"
    assert response.logs == ["ok"]
    assert response.errors == ["exit status 1"]


def test_orchestrator_stops_when_upload_fails(tmp_path):
    client = MagicMock()
    runner = MagicMock()
    client.fetch_context.return_value = CalculationContext.model_validate({"inputs": {}})
    runner.run.return_value = ProcessResult(stdout="", stderr="", returncode=0, timed_out=False)
    client.submit_result.side_effect = ProtocolError(502, "bad gateway")

    with pytest.raises(ProtocolError):
        OrchestratorService(client, runner).run_calculation("true", HOST, TOKEN, "calc-1", tmp_path, 60)


def test_fetch_failure_writes_nothing(tmp_path, requests_mock):
    requests_mock.get(remote_url("calc-404"), status_code=404)
    runner = MagicMock()

    with pytest.raises(ProtocolError) as exc:
        OrchestratorService(CoordinatorClient(), runner).run_calculation(
            "true", HOST, TOKEN, "calc-404", tmp_path, 60
        )

    assert exc.value.status_code == 404
    assert list(tmp_path.iterdir()) == []
    runner.run.assert_not_called()
    assert not any(r.method == "POST" for r in requests_mock.request_history)


@needs_bash
def test_copy_command_end_to_end(tmp_path, requests_mock):
    requests_mock.get(remote_url("calc-1"), json={"id": "calc-1", "inputs": {"a": 5}})
    upload = requests_mock.post(remote_url("calc-1"), status_code=200)

    OrchestratorService().run_calculation("cp a.json b.json", HOST, TOKEN, "calc-1", tmp_path, 30)

    assert upload.called_once
    assert json.loads(upload.last_request.body) == {"outputs": {"b": 5}, "logs": [], "errors": []}


@needs_bash
def test_timed_out_command_still_uploads(tmp_path, requests_mock):
    requests_mock.get(remote_url("calc-1"), json={"id": "calc-1", "inputs": {}})
    upload = requests_mock.post(remote_url("calc-1"), status_code=200)

    response = OrchestratorService().run_calculation(
        "echo '[1]' > part.json; echo working; sleep 30", HOST, TOKEN, "calc-1", tmp_path, 1
    )

    assert TIMEOUT_MESSAGE in response.errors
    assert response.outputs == {"part": [1]}
    assert response.logs == ["working"]
    assert json.loads(upload.last_request.body)["errors"][-1] == TIMEOUT_MESSAGE
