from __future__ import annotations

import logging
from typing import Any

import httpx

from telegram_playground_bots.execution.models import ExecutionResult

PISTON_EXECUTE_URL = "https://emkc.org/api/v2/piston/execute"
EMPTY_OUTPUT_TEXT = "No output."
logger = logging.getLogger(__name__)


class PistonClient:
    """Runs source code on a Piston code-execution endpoint.

    Every failure (HTTP status, transport error, unexpected payload) is
    returned as ``ExecutionResult.error``; ``execute`` never raises for them.
    """

    def __init__(self, *, url: str = PISTON_EXECUTE_URL, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = url
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def execute(self, *, source: str, language: str, version: str) -> ExecutionResult:
        payload = build_payload(source=source, language=language, version=version)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Piston request failed: language=%s error=%s", language, exc)
            return ExecutionResult(error=str(exc) or exc.__class__.__name__)

        if not response.is_success:
            message = _error_message(response)
            logger.warning("Piston returned status %s: %s", response.status_code, message)
            return ExecutionResult(error=message)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Piston returned a non-JSON body: status=%s", response.status_code)
            return ExecutionResult(error="invalid response from execution service")
        return parse_response(data)


def build_payload(*, source: str, language: str, version: str) -> dict[str, Any]:
    return {
        "language": language,
        "version": version,
        "files": [{"content": source}],
        "args": [],
        "stdin": "",
        "log": 0,
    }


def parse_response(data: object) -> ExecutionResult:
    if not isinstance(data, dict):
        return ExecutionResult(error="invalid response from execution service")

    compile_stage = data.get("compile")
    if isinstance(compile_stage, dict) and _compile_failed(compile_stage):
        return ExecutionResult(output=str(compile_stage.get("output") or ""), raw=data)

    run_stage = data.get("run")
    if not isinstance(run_stage, dict) or "output" not in run_stage:
        message = data.get("message")
        return ExecutionResult(error=str(message) if message else "response has no run output", raw=data)
    return ExecutionResult(output=str(run_stage["output"] or ""), raw=data)


def _compile_failed(stage: dict) -> bool:
    # A compiler killed by the sandbox reports a signal with no exit code.
    return stage.get("code") not in (0, None) or bool(stage.get("signal"))


def format_result(result: ExecutionResult) -> str:
    if result.error is not None:
        return f"Error: {result.error}"
    output = (result.output or "").rstrip()
    return output or EMPTY_OUTPUT_TEXT


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}"
