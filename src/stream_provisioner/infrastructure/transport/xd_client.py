# -*- coding: utf-8 -*-
"""
스트림 처리 플랫폼 관리 API 클라이언트.

httpx를 사용하여 관리 서버의 REST API(컨테이너 조회, 스트림 CRUD/배포,
field-value 카운터 조회/삭제)를 호출합니다.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

import httpx
import orjson
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stream_provisioner.common.errors import (
    ErrorCode,
    ProvisionerError,
    RemoteApiError,
    TransportError,
)
from stream_provisioner.common.logging import get_logger
from stream_provisioner.domain.models.counter import (
    Counter,
    DeleteOutcome,
    FieldValueCounter,
)
from stream_provisioner.domain.models.stream import Container, StreamDefinition


CONTAINERS_PATH = "/runtime/containers"
STREAM_DEFINITIONS_PATH = "/streams/definitions"
STREAM_DEPLOYMENTS_PATH = "/streams/deployments"
FIELD_VALUE_COUNTERS_PATH = "/metrics/field-value-counters"

# 재시도 대상 예외
_RETRYABLE = (httpx.TimeoutException, httpx.ConnectError)
_NON_IDEMPOTENT_RETRYABLE = (httpx.ConnectError,)
_NON_IDEMPOTENT_METHODS = frozenset({"POST"})


def format_deployment_properties(properties: Mapping[str, Any] | None) -> str:
    """배포 속성을 관리 API 형식(k1=v1,k2=v2)으로 변환합니다."""
    if not properties:
        return ""
    return ",".join(f"{key}={value}" for key, value in properties.items())


class XDAdminClient:
    """
    관리 API 클라이언트.

    모든 호출은 동기식이며, 4xx/5xx 응답은 RemoteApiError,
    네트워크 오류는 TransportError로 전달됩니다.
    카운터 삭제만 404를 DeleteOutcome.NOT_FOUND로 돌려줍니다.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 1,
        headers: dict[str, str] | None = None,
        page_size: int = 100,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        XDAdminClient 초기화.

        Args:
            base_url: 관리 서버 URL (예: http://localhost:9393)
            timeout_seconds: 요청 타임아웃 (초)
            max_attempts: 연결 실패/타임아웃 시 최대 시도 횟수 (1이면 재시도 없음)
            headers: 추가 HTTP 헤더
            page_size: 목록 조회 페이지 크기
            transport: httpx 전송 계층 (테스트용 MockTransport 주입)
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts는 1 이상이어야 합니다: {max_attempts}")

        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._page_size = page_size
        self._transport = transport

        self._client: httpx.Client | None = None
        self._running = False
        self._lock = threading.Lock()

        # 통계
        self._request_count = 0
        self._error_count = 0

        self._logger = get_logger(__name__)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def request_count(self) -> int:
        """전송한 요청 수 (재시도 제외)."""
        return self._request_count

    @property
    def error_count(self) -> int:
        """실패한 요청 수."""
        return self._error_count

    def start(self) -> None:
        """HTTP 클라이언트를 시작합니다."""
        with self._lock:
            if self._running:
                return

            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                headers=self._headers,
                transport=self._transport,
            )
            self._running = True
            self._logger.debug("관리 API 클라이언트 시작", url=self._base_url)

    def stop(self) -> None:
        """HTTP 클라이언트를 중지합니다."""
        with self._lock:
            self._running = False

            if self._client is not None:
                self._client.close()
                self._client = None

            self._logger.debug("관리 API 클라이언트 중지")

    # ------------------------------------------------------------------
    # 런타임
    # ------------------------------------------------------------------

    def list_containers(self) -> list[Container]:
        """실행 중인 컨테이너 목록을 조회합니다."""
        return [Container.from_dict(item) for item in self._get_paged(CONTAINERS_PATH)]

    # ------------------------------------------------------------------
    # 스트림
    # ------------------------------------------------------------------

    def list_streams(self) -> list[StreamDefinition]:
        """스트림 정의 목록을 조회합니다."""
        return [
            StreamDefinition.from_dict(item)
            for item in self._get_paged(STREAM_DEFINITIONS_PATH)
        ]

    def create_stream(self, name: str, definition: str, deploy: bool) -> StreamDefinition:
        """
        스트림 정의를 생성합니다.

        Args:
            name: 스트림 이름
            definition: 파이프라인 DSL
            deploy: 생성 직후 배포 여부
        """
        response = self._request(
            "POST",
            STREAM_DEFINITIONS_PATH,
            data={
                "name": name,
                "definition": definition,
                "deploy": "true" if deploy else "false",
            },
        )
        body = self._decode(response)
        if isinstance(body, dict) and body.get("name"):
            return StreamDefinition.from_dict(body)
        return StreamDefinition(name=name, definition=definition)

    def deploy_stream(self, name: str, properties: Mapping[str, Any] | None = None) -> None:
        """스트림을 배포합니다."""
        self._request(
            "POST",
            f"{STREAM_DEPLOYMENTS_PATH}/{name}",
            data={"properties": format_deployment_properties(properties)},
        )

    def undeploy_stream(self, name: str) -> None:
        """스트림 배포를 해제합니다 (정의는 유지)."""
        self._request("DELETE", f"{STREAM_DEPLOYMENTS_PATH}/{name}")

    def destroy_stream(self, name: str) -> None:
        """스트림 정의를 삭제합니다."""
        self._request("DELETE", f"{STREAM_DEFINITIONS_PATH}/{name}")

    # ------------------------------------------------------------------
    # field-value 카운터
    # ------------------------------------------------------------------

    def list_counters(self) -> list[Counter]:
        """field-value 카운터 목록을 조회합니다."""
        return [Counter.from_dict(item) for item in self._get_paged(FIELD_VALUE_COUNTERS_PATH)]

    def retrieve_counter(self, name: str) -> FieldValueCounter:
        """카운터의 필드 값별 집계를 조회합니다."""
        body = self._decode(self._request("GET", f"{FIELD_VALUE_COUNTERS_PATH}/{name}"))
        if not isinstance(body, dict):
            raise ProvisionerError(
                ErrorCode.UNEXPECTED_RESPONSE,
                f"카운터 응답 형식이 올바르지 않습니다: {name}",
                details={"counter_name": name},
            )
        body.setdefault("name", name)
        return FieldValueCounter.from_dict(body)

    def delete_counter(self, name: str) -> DeleteOutcome:
        """
        카운터를 삭제합니다.

        Returns:
            DELETED 또는 NOT_FOUND (그 외 실패는 예외)
        """
        try:
            self._request("DELETE", f"{FIELD_VALUE_COUNTERS_PATH}/{name}")
        except RemoteApiError as e:
            if e.is_not_found:
                return DeleteOutcome.NOT_FOUND
            raise
        return DeleteOutcome.DELETED

    # ------------------------------------------------------------------
    # 내부 구현
    # ------------------------------------------------------------------

    def _get_paged(self, path: str) -> list[dict[str, Any]]:
        """
        PagedResources 목록을 끝까지 조회합니다.

        응답: {"content": [...], "page": {"number": 0, "totalPages": 2, ...}}
        배열 응답도 허용합니다.
        """
        items: list[dict[str, Any]] = []
        page = 0

        while True:
            body = self._decode(
                self._request("GET", path, params={"page": page, "size": self._page_size})
            )
            if isinstance(body, list):
                return body
            if not isinstance(body, dict):
                raise ProvisionerError(
                    ErrorCode.UNEXPECTED_RESPONSE,
                    f"목록 응답 형식이 올바르지 않습니다: {path}",
                    details={"path": path},
                )

            content = body.get("content") or []
            items.extend(content)

            page_info = body.get("page") or {}
            number = int(page_info.get("number", page))
            total_pages = int(page_info.get("totalPages", 0))
            if not content or number + 1 >= total_pages:
                break
            page = number + 1

        return items

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """요청을 보내고, 실패를 ProvisionerError 계열로 변환합니다."""
        client = self._client
        if not self._running or client is None:
            raise ProvisionerError(
                ErrorCode.INTERNAL_ERROR,
                "관리 API 클라이언트가 실행 중이 아닙니다",
            )

        url = f"{self._base_url}{path}"
        self._request_count += 1

        try:
            response = self._send_with_retry(client, method, path, params=params, data=data)
        except httpx.TimeoutException as e:
            self._error_count += 1
            raise TransportError(
                ErrorCode.TRANSPORT_TIMEOUT,
                f"관리 API 요청 타임아웃: {method} {url}",
                method=method,
                target_url=url,
                details={"error": str(e)},
            ) from e
        except httpx.TransportError as e:
            self._error_count += 1
            raise TransportError(
                ErrorCode.TRANSPORT_FAILED,
                f"관리 API 연결 실패: {method} {url}",
                method=method,
                target_url=url,
                details={"error": str(e)},
            ) from e

        if response.status_code >= 400:
            self._error_count += 1
            message, details = self._error_details(response)
            self._logger.debug(
                "관리 API 오류 응답",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise RemoteApiError(
                response.status_code,
                message,
                method=method,
                target_url=url,
                details=details,
            )

        self._logger.debug(
            "관리 API 응답",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    def _send_with_retry(
        self,
        client: httpx.Client,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        연결 실패/타임아웃만 재시도합니다 (max_attempts=1이면 1회 시도).

        POST는 멱등하지 않으므로 요청이 전송되지 않은 연결 실패만 재시도합니다.
        타임아웃 후 재전송하면 이미 생성된 스트림에 409가 돌아올 수 있습니다.
        """
        retryable = _NON_IDEMPOTENT_RETRYABLE if method in _NON_IDEMPOTENT_METHODS else _RETRYABLE
        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type(retryable),
            reraise=True,
        )
        return retrying(client.request, method, path, **kwargs)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """JSON 본문을 디코딩합니다. 빈 본문은 None."""
        if not response.content:
            return None
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ProvisionerError(
                ErrorCode.UNEXPECTED_RESPONSE,
                f"JSON이 아닌 응답: {response.request.method} {response.request.url}",
                details={"body": response.text[:200]},
            ) from e

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, dict[str, Any]]:
        """
        오류 응답 본문에서 메시지를 추출합니다.

        관리 서버는 [{"logref": "...", "message": "..."}] 형식으로 응답합니다.
        """
        fallback = f"HTTP {response.status_code}: {response.request.method} {response.request.url}"
        try:
            body = orjson.loads(response.content) if response.content else None
        except orjson.JSONDecodeError:
            return fallback, {"body": response.text[:200]}

        if isinstance(body, dict):
            body = [body]
        if isinstance(body, list) and body and isinstance(body[0], dict):
            first = body[0]
            details: dict[str, Any] = {}
            if first.get("logref"):
                details["logref"] = first["logref"]
            message = first.get("message") or first.get("error") or fallback
            return str(message), details

        return fallback, {}

    def get_stats(self) -> dict:
        """통계 정보 반환."""
        return {
            "url": self._base_url,
            "running": self._running,
            "request_count": self._request_count,
            "error_count": self._error_count,
        }

    def __enter__(self) -> XDAdminClient:
        """컨텍스트 매니저 진입."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """컨텍스트 매니저 종료."""
        self.stop()
