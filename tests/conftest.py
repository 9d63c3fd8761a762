"""
공용 픽스처

관리 서버는 httpx.MockTransport 위의 인메모리 FakeXDServer로 대체합니다.
"""

import math
import os
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import parse_qs

os.environ.setdefault("STREAM_PROVISIONER_SKIP_DEFAULT_LOGGING", "1")

import httpx
import pytest
from loguru import logger

from stream_provisioner.application.provisioning.workflow import ProvisioningSettings
from stream_provisioner.infrastructure.transport.xd_client import XDAdminClient


BASE_URL = "http://xd-admin.test:9393"

DEFAULT_WORD_COUNTS = {"cat": 3.0, "dog": 7.0, "fox": 1.0}


@dataclass
class FailureRule:
    method: str
    path: str
    status: int | None = None
    error: Exception | None = None
    when: Callable[[dict[str, str]], bool] | None = None


class FakeXDServer:
    """
    인메모리 관리 서버

    words와 탭 스트림이 모두 배포되면 word_counts로 카운터를 채웁니다.
    """

    def __init__(self) -> None:
        self.containers: list[dict[str, Any]] = [
            {
                "containerId": "c-1",
                "groups": "",
                "deploymentSize": 0,
                "attributes": {"id": "c-1", "host": "node-1", "ip": "10.0.0.1", "pid": "4242"},
            }
        ]
        self.streams: dict[str, dict[str, Any]] = {}
        self.counters: dict[str, dict[str, float]] = {}
        self.word_counts: dict[str, float] = dict(DEFAULT_WORD_COUNTS)
        self.counter_name = "wordcount"
        self.source_stream = "words"
        self.tap_stream = "wordcount"
        self.pending_counter_reads = 0
        self.calls: list[tuple[str, str, dict[str, str]]] = []
        self.failures: list[FailureRule] = []

    # 테스트 보조
    def add_stream(self, name: str, definition: str = "time | log", deployed: bool = True) -> None:
        self.streams[name] = {
            "name": name,
            "definition": definition,
            "status": "deployed" if deployed else "undeployed",
        }

    def fail(self, method: str, path: str, *, status: int | None = None,
             error: Exception | None = None,
             when: Callable[[dict[str, str]], bool] | None = None) -> None:
        self.failures.append(FailureRule(method, path, status, error, when))

    def calls_to(self, method: str, path: str) -> list[dict[str, str]]:
        return [form for m, p, form in self.calls if m == method and p == path]

    def index_of(self, method: str, path: str, **form: str) -> int:
        for i, (m, p, f) in enumerate(self.calls):
            if m == method and p == path and all(f.get(k) == v for k, v in form.items()):
                return i
        raise AssertionError(f"호출 없음: {method} {path} {form}")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # 라우팅
    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        form = {}
        if request.content:
            form = {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}
        self.calls.append((method, path, form))

        for rule in self.failures:
            if rule.method == method and rule.path == path and (rule.when is None or rule.when(form)):
                if rule.error is not None:
                    raise rule.error
                return self._error(rule.status or 500, "SimulatedError", f"simulated failure {method} {path}")

        parts = path.strip("/").split("/")

        if parts == ["runtime", "containers"] and method == "GET":
            return self._paged(self.containers, request)

        if parts[:2] == ["streams", "definitions"]:
            if len(parts) == 2 and method == "GET":
                return self._paged(list(self.streams.values()), request)
            if len(parts) == 2 and method == "POST":
                return self._create_stream(form)
            if len(parts) == 3 and method == "DELETE":
                if self.streams.pop(parts[2], None) is None:
                    return self._error(404, "NoSuchDefinitionException", f"There is no stream definition named '{parts[2]}'")
                return httpx.Response(200)

        if parts[:2] == ["streams", "deployments"] and len(parts) == 3:
            stream = self.streams.get(parts[2])
            if stream is None:
                return self._error(404, "NoSuchDefinitionException", f"There is no stream definition named '{parts[2]}'")
            stream["status"] = "deployed" if method == "POST" else "undeployed"
            if method == "POST":
                stream["properties"] = form.get("properties", "")
                self._maybe_count()
            return httpx.Response(200)

        if parts[:2] == ["metrics", "field-value-counters"]:
            if len(parts) == 2 and method == "GET":
                return self._paged([{"name": n} for n in self.counters], request)
            name = parts[2]
            if method == "GET":
                if self.pending_counter_reads > 0:
                    self.pending_counter_reads -= 1
                    return self._error(404, "NoSuchMetricException", f"Metric named '{name}' not found")
                if name not in self.counters:
                    return self._error(404, "NoSuchMetricException", f"Metric named '{name}' not found")
                return httpx.Response(200, json={"name": name, "fieldValueCounts": self.counters[name]})
            if method == "DELETE":
                if self.counters.pop(name, None) is None:
                    return self._error(404, "NoSuchMetricException", f"Metric named '{name}' not found")
                return httpx.Response(200)

        return self._error(405, "UnsupportedOperation", f"{method} {path}")

    def _create_stream(self, form: dict[str, str]) -> httpx.Response:
        name = form["name"]
        if name in self.streams:
            return self._error(409, "StreamAlreadyExistsException", f"There is already a stream named '{name}'")
        deployed = form.get("deploy") == "true"
        self.add_stream(name, form["definition"], deployed=deployed)
        if deployed:
            self._maybe_count()
        return httpx.Response(201, json=self.streams[name])

    def _maybe_count(self) -> None:
        source = self.streams.get(self.source_stream)
        tap = self.streams.get(self.tap_stream)
        if source and tap and source["status"] == tap["status"] == "deployed":
            self.counters[self.counter_name] = dict(self.word_counts)

    @staticmethod
    def _paged(items: list[dict[str, Any]], request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", 0))
        size = int(request.url.params.get("size", 20))
        chunk = items[page * size:(page + 1) * size]
        return httpx.Response(
            200,
            json={
                "links": [],
                "content": chunk,
                "page": {
                    "size": size,
                    "totalElements": len(items),
                    "totalPages": math.ceil(len(items) / size),
                    "number": page,
                },
            },
        )

    @staticmethod
    def _error(status: int, logref: str, message: str) -> httpx.Response:
        return httpx.Response(status, json=[{"logref": logref, "message": message, "links": []}])


@pytest.fixture
def server() -> FakeXDServer:
    return FakeXDServer()


@pytest.fixture
def client(server):
    with XDAdminClient(BASE_URL, transport=server.transport) as c:
        yield c


@pytest.fixture
def settings() -> ProvisioningSettings:
    return ProvisioningSettings(input_directory="/tmp/xd/input/words")


@pytest.fixture
def sleeps() -> list[float]:
    """주입용 sleep 기록."""
    return []


@pytest.fixture
def fake_sleep(sleeps) -> Callable[[float], None]:
    return sleeps.append


@pytest.fixture
def log_messages():
    """loguru 메시지를 수집합니다."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
