"""
wordcount 프로비저닝 워크플로

기존 스트림/카운터 정리 → words, wordcount 스트림 생성 및 배포 →
집계 대기 → 카운터 상위 항목 보고를 순서대로 수행합니다.
어느 단계든 원격 호출이 실패하면 전체 실행이 중단되며,
이미 생성된 리소스는 되돌리지 않습니다.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Protocol

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_delay,
    wait_exponential,
)

from stream_provisioner.common.errors import (
    CounterError,
    ErrorCode,
    ProvisionerError,
    RemoteApiError,
    StreamError,
)
from stream_provisioner.common.logging import (
    generate_run_id,
    get_logger,
    set_run_id,
    set_stream_context,
)
from stream_provisioner.domain.models.counter import (
    DEFAULT_TOP_N,
    Counter,
    CounterEntry,
    DeleteOutcome,
    FieldValueCounter,
)
from stream_provisioner.domain.models.stream import Container, StreamDefinition

logger = get_logger(__name__)


WORD_STREAM_DEFINITION = (
    "file --dir={input_directory} --outputType=text/plain | "
    "splitter --expression=payload.split(' ')  | log"
)

WORDCOUNT_STREAM_DEFINITION = (
    "tap:stream:{word_stream}.splitter > transform "
    "--expression=T(org.springframework.xd.tuple.TupleBuilder).tuple().of('word',payload)"
    " | field-value-counter --fieldName=word"
)


class AdminClientProtocol(Protocol):
    """관리 API 클라이언트 인터페이스 정의"""
    def list_containers(self) -> list[Container]: ...
    def list_streams(self) -> list[StreamDefinition]: ...
    def undeploy_stream(self, name: str) -> None: ...
    def destroy_stream(self, name: str) -> None: ...
    def create_stream(self, name: str, definition: str, deploy: bool) -> Any: ...
    def deploy_stream(self, name: str, properties: Mapping[str, Any] | None = None) -> None: ...
    def delete_counter(self, name: str) -> DeleteOutcome: ...
    def list_counters(self) -> list[Counter]: ...
    def retrieve_counter(self, name: str) -> FieldValueCounter: ...


@dataclass
class ProvisioningSettings:
    """
    프로비저닝 설정 (런타임용)

    Attributes:
        input_directory: words 스트림이 읽을 디렉터리
        word_stream: 단어 분리 스트림 이름
        wordcount_stream: 탭 집계 스트림 이름
        counter_name: field-value 카운터 이름
        top_n: 카운터별 보고 항목 수
        wait_strategy: "fixed" 또는 "poll"
        wait_seconds: fixed 전략의 대기 시간 (초)
        poll_timeout_seconds: poll 전략의 최대 대기 시간 (초)
        poll_min_seconds: poll 간격 하한 (초)
        poll_max_seconds: poll 간격 상한 (초)
    """

    input_directory: str
    word_stream: str = "words"
    wordcount_stream: str = "wordcount"
    counter_name: str = "wordcount"
    top_n: int = DEFAULT_TOP_N
    wait_strategy: Literal["fixed", "poll"] = "fixed"
    wait_seconds: float = 8.0
    poll_timeout_seconds: float = 60.0
    poll_min_seconds: float = 0.5
    poll_max_seconds: float = 5.0

    def __post_init__(self) -> None:
        if not self.input_directory:
            raise ValueError("input_directory는 필수입니다")
        if self.word_stream == self.wordcount_stream:
            raise ValueError("word_stream과 wordcount_stream 이름이 같을 수 없습니다")
        if self.wait_strategy not in ("fixed", "poll"):
            raise ValueError(f"지원하지 않는 대기 전략: {self.wait_strategy}")
        if self.top_n < 1:
            raise ValueError(f"top_n은 1 이상이어야 합니다: {self.top_n}")

    @property
    def word_stream_definition(self) -> str:
        return WORD_STREAM_DEFINITION.format(input_directory=self.input_directory)

    @property
    def wordcount_stream_definition(self) -> str:
        definition = WORDCOUNT_STREAM_DEFINITION.format(word_stream=self.word_stream)
        # 카운터 이름 기본값은 스트림 이름
        if self.counter_name != self.wordcount_stream:
            definition += f" --name={self.counter_name}"
        return definition


@dataclass
class CounterReport:
    """카운터 하나의 상위 항목."""

    name: str
    entries: list[CounterEntry] = field(default_factory=list)

    def lines(self) -> list[str]:
        return [entry.format() for entry in self.entries]


@dataclass
class ProvisioningReport:
    """실행 결과 요약."""

    run_id: str
    containers: list[Container] = field(default_factory=list)
    removed_streams: list[str] = field(default_factory=list)
    counter_reset: DeleteOutcome | None = None
    created_streams: list[str] = field(default_factory=list)
    counts_ready: bool = False
    counters: list[CounterReport] = field(default_factory=list)

    def get(self, counter_name: str) -> CounterReport | None:
        for counter in self.counters:
            if counter.name == counter_name:
                return counter
        return None


def _is_missing_counter(error: BaseException) -> bool:
    return isinstance(error, RemoteApiError) and error.is_not_found


class WordCountProvisioner:
    """
    wordcount 데모 프로비저닝

    관리 API 클라이언트는 생성자에서 명시적으로 전달받습니다.

    Example:
        >>> with XDAdminClient("http://localhost:9393") as client:
        ...     provisioner = WordCountProvisioner(client, ProvisioningSettings("/tmp/xd/input"))
        ...     report = provisioner.run()
    """

    def __init__(
        self,
        client: AdminClientProtocol,
        settings: ProvisioningSettings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._settings = settings
        self._sleep = sleep

    @property
    def settings(self) -> ProvisioningSettings:
        return self._settings

    def run(self) -> ProvisioningReport:
        """전체 워크플로를 실행합니다. 실패 시 예외가 그대로 전파됩니다."""
        report = ProvisioningReport(run_id=generate_run_id())
        set_run_id(report.run_id)
        try:
            report.containers = self.log_containers()
            report.removed_streams = self.remove_existing_streams()
            report.counter_reset = self.reset_counter()
            report.created_streams = self.create_streams()
            report.counts_ready = self.wait_for_counts()
            report.counters = self.report_counters()
            logger.info("프로비저닝 완료", counters=len(report.counters))
            return report
        finally:
            set_stream_context(None)
            set_run_id(None)

    def log_containers(self) -> list[Container]:
        """실행 중인 컨테이너를 로그로 남깁니다 (진단용)."""
        containers = self._client.list_containers()
        for container in containers:
            logger.info(f"실행 중인 컨테이너: {container}")
        if not containers:
            logger.warning("실행 중인 컨테이너가 없습니다")
        return containers

    def remove_existing_streams(self) -> list[str]:
        """
        같은 이름의 기존 스트림을 배포 해제 후 삭제합니다.

        탭 스트림(wordcount)을 원본 스트림(words)보다 먼저 정리합니다.
        """
        s = self._settings
        logger.info(f"기존 스트림 확인: {s.word_stream}, {s.wordcount_stream}")

        existing = {stream.name: stream for stream in self._client.list_streams()}
        removed: list[str] = []

        for name in (s.wordcount_stream, s.word_stream):
            if name not in existing:
                continue
            set_stream_context(name)
            logger.info(f"스트림 배포 해제/삭제: {name}", deployed=existing[name].is_deployed)
            self._call_for_stream(name, ErrorCode.STREAM_DEPLOY_FAILED, self._client.undeploy_stream, name)
            self._call_for_stream(name, ErrorCode.STREAM_DESTROY_FAILED, self._client.destroy_stream, name)
            removed.append(name)

        set_stream_context(None)

        return removed

    def reset_counter(self) -> DeleteOutcome:
        """이전 실행의 카운터를 삭제합니다. 없으면 그대로 진행합니다."""
        name = self._settings.counter_name
        outcome = self._client.delete_counter(name)
        if outcome is DeleteOutcome.NOT_FOUND:
            logger.info(f"카운터 {name}이(가) 존재하지 않습니다")
        else:
            logger.info(f"카운터 삭제: {name}")
        return outcome

    def create_streams(self) -> list[str]:
        """
        words 스트림을 생성하고, wordcount 탭 스트림을 생성(자동 배포)한 뒤
        words 스트림을 배포합니다.

        탭이 먼저 배포되어야 words가 흘려보내는 단어를 놓치지 않습니다.
        """
        s = self._settings

        set_stream_context(s.word_stream)
        logger.info(f"스트림 생성: {s.word_stream}")
        self._call_for_stream(
            s.word_stream,
            ErrorCode.STREAM_CREATE_FAILED,
            self._client.create_stream,
            s.word_stream,
            s.word_stream_definition,
            False,
        )

        set_stream_context(s.wordcount_stream)
        logger.info(f"스트림 생성: {s.wordcount_stream}")
        self._call_for_stream(
            s.wordcount_stream,
            ErrorCode.STREAM_CREATE_FAILED,
            self._client.create_stream,
            s.wordcount_stream,
            s.wordcount_stream_definition,
            True,
        )

        set_stream_context(s.word_stream)
        logger.info(f"스트림 배포: {s.word_stream}")
        self._call_for_stream(
            s.word_stream,
            ErrorCode.STREAM_DEPLOY_FAILED,
            self._client.deploy_stream,
            s.word_stream,
            {},
        )
        set_stream_context(None)

        return [s.word_stream, s.wordcount_stream]

    def wait_for_counts(self) -> bool:
        """
        단어가 집계될 때까지 대기합니다.

        Returns:
            poll 전략에서 카운터가 채워졌으면 True, 시간 초과면 False.
            fixed 전략은 대기 후 항상 True.
        """
        s = self._settings

        if s.wait_strategy == "fixed":
            logger.info(f"집계 대기: {s.wait_seconds}초")
            self._sleep(s.wait_seconds)
            return True

        logger.info(
            f"카운터 {s.counter_name} 집계 대기 (최대 {s.poll_timeout_seconds}초)",
        )
        retrying = Retrying(
            stop=stop_after_delay(s.poll_timeout_seconds),
            wait=wait_exponential(
                multiplier=s.poll_min_seconds,
                min=s.poll_min_seconds,
                max=s.poll_max_seconds,
            ),
            retry=(
                retry_if_result(lambda counter: counter is None or counter.is_empty)
                | retry_if_exception(_is_missing_counter)
            ),
            sleep=self._sleep,
        )
        try:
            counter = retrying(self._client.retrieve_counter, s.counter_name)
        except RetryError:
            logger.warning(
                f"카운터 {s.counter_name} 집계 대기 시간 초과",
                timeout_seconds=s.poll_timeout_seconds,
            )
            return False

        logger.info(
            f"카운터 {s.counter_name} 집계 확인",
            values=len(counter.field_value_counts),
        )
        return True

    def report_counters(self) -> list[CounterReport]:
        """모든 카운터의 상위 항목을 조회하고 출력합니다."""
        reports: list[CounterReport] = []

        for counter in self._client.list_counters():
            logger.info(f"카운터 '{counter.name}' 값 목록...")
            values = self._retrieve_for_report(counter.name)
            report = CounterReport(name=counter.name, entries=values.top(self._settings.top_n))
            for line in report.lines():
                logger.info(line)
            reports.append(report)

        return reports

    def _retrieve_for_report(self, name: str) -> FieldValueCounter:
        try:
            return self._client.retrieve_counter(name)
        except RemoteApiError as e:
            code = ErrorCode.COUNTER_NOT_FOUND if e.is_not_found else e.code
            raise CounterError(
                code,
                f"카운터 조회 실패 ({name}): {e.message}",
                counter_name=name,
                details={"cause": e.to_dict()},
            ) from e

    @staticmethod
    def _call_for_stream(
        stream_name: str,
        code: ErrorCode,
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """
        스트림 단위 호출 실패를 StreamError로 감쌉니다.

        원격 API가 404를 돌려주면 STREAM_NOT_FOUND로 보고합니다.
        """
        try:
            return func(*args)
        except ProvisionerError as e:
            if isinstance(e, RemoteApiError) and e.is_not_found:
                code = ErrorCode.STREAM_NOT_FOUND
            raise StreamError(
                code,
                f"스트림 작업 실패 ({stream_name}): {e.message}",
                stream_name=stream_name,
                details={"cause": e.to_dict()},
            ) from e
