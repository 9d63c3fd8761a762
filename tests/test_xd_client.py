"""관리 API 클라이언트 테스트."""

import httpx
import pytest

from stream_provisioner.common.errors import (
    ErrorCode,
    ProvisionerError,
    RemoteApiError,
    TransportError,
)
from stream_provisioner.domain.models.counter import DeleteOutcome
from stream_provisioner.infrastructure.transport.xd_client import (
    XDAdminClient,
    format_deployment_properties,
)

from conftest import BASE_URL


class TestListing:
    def test_list_containers(self, client):
        containers = client.list_containers()
        assert [c.container_id for c in containers] == ["c-1"]
        assert containers[0].ip == "10.0.0.1"

    def test_follows_pages(self, server):
        server.containers = [{"containerId": f"c-{i}", "attributes": {}} for i in range(5)]
        with XDAdminClient(BASE_URL, page_size=2, transport=server.transport) as client:
            containers = client.list_containers()
        assert [c.container_id for c in containers] == [f"c-{i}" for i in range(5)]
        assert len(server.calls_to("GET", "/runtime/containers")) == 3

    def test_bare_list_response(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=[{"name": "words", "definition": "file | log"}])
        )
        with XDAdminClient(BASE_URL, transport=transport) as client:
            streams = client.list_streams()
        assert [s.name for s in streams] == ["words"]

    def test_empty_list(self, client):
        assert client.list_streams() == []
        assert client.list_counters() == []


class TestStreams:
    def test_create_stream_sends_form(self, client, server):
        stream = client.create_stream("words", "file | log", deploy=False)
        assert stream.name == "words"
        assert server.calls_to("POST", "/streams/definitions") == [
            {"name": "words", "definition": "file | log", "deploy": "false"}
        ]

    def test_create_duplicate_is_conflict(self, client, server):
        server.add_stream("words")
        with pytest.raises(RemoteApiError) as exc_info:
            client.create_stream("words", "file | log", deploy=True)
        assert exc_info.value.status_code == 409
        assert exc_info.value.code is ErrorCode.RESOURCE_CONFLICT
        assert "already a stream" in exc_info.value.message
        assert exc_info.value.details["logref"] == "StreamAlreadyExistsException"

    def test_deploy_sends_properties(self, client, server):
        server.add_stream("words", deployed=False)
        client.deploy_stream("words", {"module.log.count": 2})
        assert server.calls_to("POST", "/streams/deployments/words") == [
            {"properties": "module.log.count=2"}
        ]
        assert server.streams["words"]["status"] == "deployed"

    def test_undeploy_and_destroy(self, client, server):
        server.add_stream("words")
        client.undeploy_stream("words")
        assert server.streams["words"]["status"] == "undeployed"
        client.destroy_stream("words")
        assert "words" not in server.streams

    def test_destroy_missing_raises(self, client):
        with pytest.raises(RemoteApiError) as exc_info:
            client.destroy_stream("nope")
        assert exc_info.value.is_not_found


class TestCounters:
    def test_retrieve(self, client, server):
        server.counters["wordcount"] = {"a": 1.0}
        counter = client.retrieve_counter("wordcount")
        assert counter.name == "wordcount"
        assert counter.field_value_counts == {"a": 1.0}

    def test_delete_existing(self, client, server):
        server.counters["wordcount"] = {"a": 1.0}
        assert client.delete_counter("wordcount") is DeleteOutcome.DELETED
        assert "wordcount" not in server.counters

    def test_delete_missing_is_not_found(self, client):
        assert client.delete_counter("wordcount") is DeleteOutcome.NOT_FOUND

    def test_delete_other_failure_raises(self, client, server):
        server.fail("DELETE", "/metrics/field-value-counters/wordcount", status=500)
        with pytest.raises(RemoteApiError) as exc_info:
            client.delete_counter("wordcount")
        assert exc_info.value.code is ErrorCode.REMOTE_FAILED


class TestFailures:
    def test_connect_error_becomes_transport_error(self, client, server):
        server.fail("GET", "/streams/definitions", error=httpx.ConnectError("connection refused"))
        with pytest.raises(TransportError) as exc_info:
            client.list_streams()
        assert exc_info.value.code is ErrorCode.TRANSPORT_FAILED
        assert exc_info.value.method == "GET"
        assert client.error_count == 1

    def test_timeout(self, client, server):
        server.fail("GET", "/runtime/containers", error=httpx.ReadTimeout("timed out"))
        with pytest.raises(TransportError) as exc_info:
            client.list_containers()
        assert exc_info.value.code is ErrorCode.TRANSPORT_TIMEOUT

    def test_no_retry_by_default(self, client, server):
        server.fail("GET", "/streams/definitions", error=httpx.ConnectError("connection refused"))
        with pytest.raises(TransportError):
            client.list_streams()
        assert len(server.calls_to("GET", "/streams/definitions")) == 1

    def test_retries_connect_errors_when_configured(self, server):
        attempts = []

        def flaky(form):
            attempts.append(form)
            return len(attempts) == 1

        server.fail("GET", "/streams/definitions", error=httpx.ConnectError("refused"), when=flaky)
        with XDAdminClient(BASE_URL, max_attempts=2, transport=server.transport) as client:
            assert client.list_streams() == []
        assert len(server.calls_to("GET", "/streams/definitions")) == 2

    def test_retries_read_timeout_on_get(self, server):
        server.fail(
            "GET",
            "/runtime/containers",
            error=httpx.ReadTimeout("timed out"),
            when=lambda form: len(server.calls_to("GET", "/runtime/containers")) == 1,
        )
        with XDAdminClient(BASE_URL, max_attempts=2, transport=server.transport) as client:
            assert len(client.list_containers()) == 1
        assert len(server.calls_to("GET", "/runtime/containers")) == 2

    def test_post_read_timeout_is_not_resent(self, server):
        server.fail("POST", "/streams/definitions", error=httpx.ReadTimeout("timed out"))
        with XDAdminClient(BASE_URL, max_attempts=3, transport=server.transport) as client:
            with pytest.raises(TransportError) as exc_info:
                client.create_stream("words", "time | log", deploy=False)
        assert exc_info.value.code is ErrorCode.TRANSPORT_TIMEOUT
        assert len(server.calls_to("POST", "/streams/definitions")) == 1

    def test_post_connect_error_is_retried(self, server):
        server.fail(
            "POST",
            "/streams/definitions",
            error=httpx.ConnectError("refused"),
            when=lambda form: len(server.calls_to("POST", "/streams/definitions")) == 1,
        )
        with XDAdminClient(BASE_URL, max_attempts=2, transport=server.transport) as client:
            stream = client.create_stream("words", "time | log", deploy=False)
        assert stream.name == "words"
        assert len(server.calls_to("POST", "/streams/definitions")) == 2

    def test_non_json_error_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
        with XDAdminClient(BASE_URL, transport=transport) as client:
            with pytest.raises(RemoteApiError) as exc_info:
                client.list_streams()
        assert exc_info.value.status_code == 502
        assert exc_info.value.details["body"] == "Bad Gateway"

    def test_not_started(self, server):
        client = XDAdminClient(BASE_URL, transport=server.transport)
        with pytest.raises(ProvisionerError) as exc_info:
            client.list_streams()
        assert exc_info.value.code is ErrorCode.INTERNAL_ERROR

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            XDAdminClient(BASE_URL, max_attempts=0)


def test_stats(client):
    client.list_streams()
    stats = client.get_stats()
    assert stats["running"] is True
    assert stats["request_count"] == 1
    assert stats["error_count"] == 0


def test_format_deployment_properties():
    assert format_deployment_properties({}) == ""
    assert format_deployment_properties(None) == ""
    assert format_deployment_properties({"a": 1, "b": "x"}) == "a=1,b=x"
