"""Shared test fixtures and factories."""

import base64
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from autofill.config.models import AutofillConfig, OpenAIConfig
from autofill.extraction.client import RawUpstreamResponse
from autofill.extraction.request import ExtractionRequest

TEST_API_KEY = "sk-test-abcdefghijklmnopqrstuvwxyz"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"
PNG_BASE64 = base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of the tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
    monkeypatch.delenv("AUTOFILL_LOG_LEVEL", raising=False)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config() -> AutofillConfig:
    """Configuration with a credential and default settings."""
    return AutofillConfig(openai=OpenAIConfig(api_key=SecretStr(TEST_API_KEY)))


@pytest.fixture
def config_without_key() -> AutofillConfig:
    return AutofillConfig()


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[openai]
api_key = "sk-file-abcdefghijklmnopqrstuvwxyz"

[inference]
model = "gpt-4o-mini"
timeout_seconds = 20

[extraction]
layout = "flat"

[server]
port = 9090
diagnostic_errors = false
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# Upstream Fakes
# =============================================================================


def responses_envelope(text: str, *, flat_text: bool = False) -> dict[str, Any]:
    """Build a Responses API reply carrying ``text`` as output."""
    envelope: dict[str, Any] = {
        "id": "resp_test",
        "object": "response",
        "status": "completed",
        "model": "gpt-4o-2024-08-06",
        "output": [
            {
                "id": "msg_test",
                "type": "message",
                "role": "assistant",
                "status": "completed",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            }
        ],
    }
    if flat_text:
        envelope["output_text"] = text
    return envelope


def sample_extraction() -> dict[str, Any]:
    """A schema-conforming nested extraction."""
    return {
        "schema_version": "1.0",
        "step2": {
            "productInformation": {
                "group1": {
                    "productDescription": "Ceramic coffee mug",
                    "productName": "Morning Mug",
                    "productBrand": "Acme",
                    "productUseAndApplication": "Drinking hot beverages",
                },
                "detailedProductDescription": {
                    "productDescriptionExtended": "White glazed ceramic mug with handle."
                },
                "generalInformation": {"isElectric": False},
                "productUses": {"foodContact": True},
                "productMaterials": {
                    "containsPaper": False,
                    "containsGlass": False,
                    "containsMetal": False,
                    "containsTextiles": False,
                    "containsBiodegradableMaterial": False,
                },
            }
        },
        "step5": {
            "productInfo": {
                "productWarning": {"productWarning": "Hot liquids can cause burns."}
            }
        },
    }


def mock_transport(
    handler: Callable[[httpx.Request], Any],
) -> tuple[httpx.MockTransport, list[httpx.Request]]:
    """Wrap a handler in a MockTransport that records every request."""
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> Any:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(_record), seen


class FakeInferenceClient:
    """Inference client returning a canned reply."""

    def __init__(self, status_code: int = 200, body: bytes | dict | None = None):
        if body is None:
            body = responses_envelope(json.dumps(sample_extraction()))
        if isinstance(body, dict):
            body = json.dumps(body).encode()
        self._response = RawUpstreamResponse(status_code=status_code, body=body)
        self.requests: list[ExtractionRequest] = []

    @property
    def name(self) -> str:
        return "fake"

    async def send(self, request: ExtractionRequest) -> RawUpstreamResponse:
        self.requests.append(request)
        return self._response


class FailingInferenceClient:
    """Inference client that raises the given exception."""

    def __init__(self, exc: Exception):
        self._exc = exc

    @property
    def name(self) -> str:
        return "failing"

    async def send(self, request: ExtractionRequest) -> RawUpstreamResponse:
        raise self._exc


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})
