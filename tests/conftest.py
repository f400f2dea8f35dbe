import json
import os
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from mpesapy.domain.models.resilience import AdmissionConfig, RetryConfig
from mpesapy.infrastructure.config import settings
from mpesapy.infrastructure.resilience.admission_window import AdmissionWindow
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0, step: float = 0.0):
        self.now = start
        self.step = step  # added on every read

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep in the executor; records delays, never waits."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FixedRandom:
    def __init__(self, value: float = 0.5):
        self.value = value

    def random(self) -> float:
        return self.value


class GatewayStub:
    """Routes requests by URL to queued responses and records what was sent."""

    TOKEN_URL = "https://apisandbox.safaricom.et/v1/token/generate"
    STK_PUSH_URL = "https://apisandbox.safaricom.et/mpesa/stkpush/v3/processrequest"
    PAYOUT_URL = "https://apisandbox.safaricom.et/mpesa/b2c/v2/paymentrequest"
    REGISTER_URL = "https://apisandbox.safaricom.et/v1/c2b-register-url/register"
    TOKEN_BODY = {"access_token": "test-token", "token_type": "Bearer", "expires_in": "3599"}

    def __init__(self):
        self.routes: Dict[str, List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def queue(self, url: str, *responses: Any) -> "GatewayStub":
        """Each response is (status, json_body) or an exception class to raise."""
        self.routes.setdefault(url, []).extend(responses)
        return self

    def requests_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?")[0]
        queued = self.routes.get(url)
        if not queued:
            raise AssertionError(f"Unexpected request to {url}")
        # The last response repeats once the queue is down to one.
        response = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(response, type) and issubclass(response, Exception):
            raise response("simulated transport failure", request=request)
        status, body = response
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def with_token(self) -> "GatewayStub":
        return self.queue(self.TOKEN_URL, (200, self.TOKEN_BODY))

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's environment and config files."""
    for key in list(os.environ):
        if key.startswith("MPESA"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing-config.yaml")
    settings.clear_test_config()
    settings.reset_configuration()
    yield
    settings.clear_test_config()
    settings.reset_configuration()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    return RecordingSleep()


@pytest.fixture
def make_executor(no_sleep):
    """Factory for executors with injected time, sleep and jitter."""

    def _make(
        retry_config: Optional[RetryConfig] = None,
        admission_config: Optional[AdmissionConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        poll_interval: float = 0.0,
        event_handler=None,
        rng=None,
    ) -> RequestExecutor:
        window_kwargs = {"poll_interval": poll_interval}
        if clock is not None:
            window_kwargs["clock"] = clock
        window = AdmissionWindow(admission_config or AdmissionConfig(), **window_kwargs)
        return RequestExecutor(
            retry_config=retry_config or RetryConfig(max_retries=3, initial_delay_ms=10, max_delay_ms=100),
            admission_window=window,
            sleep=no_sleep,
            rng=rng or FixedRandom(),
            event_handler=event_handler,
        )

    return _make


@pytest.fixture
def gateway():
    return GatewayStub()
