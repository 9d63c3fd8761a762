"""
구조화 로깅 모듈

stream_provisioner 전체에서 사용하는 로깅 설정과 유틸리티를 제공합니다.
loguru 기반으로 구조화된 로깅을 지원합니다.

주요 기능:
- JSON 형식 출력 (LOG_FORMAT=json)
- 컬러 콘솔 출력 (기본)
- 컨텍스트 바인딩 (run_id, stream_name)
"""

import sys
import os
import uuid
from contextvars import ContextVar
from typing import Any
from functools import lru_cache

from loguru import logger


# 컨텍스트 변수: 실행별 run_id, 현재 처리 중인 스트림 이름
_run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
_stream_name_var: ContextVar[str | None] = ContextVar("stream_name", default=None)


def set_run_id(run_id: str | None) -> None:
    """run_id를 현재 컨텍스트에 설정합니다."""
    _run_id_var.set(run_id)


def generate_run_id() -> str:
    """새로운 run_id를 생성합니다."""
    return uuid.uuid4().hex[:12]


def set_stream_context(stream_name: str | None) -> None:
    """스트림 이름을 현재 컨텍스트에 설정합니다."""
    _stream_name_var.set(stream_name)


def _get_context_extra() -> dict[str, Any]:
    """현재 컨텍스트의 추가 정보를 반환합니다."""
    extra: dict[str, Any] = {}

    run_id = _run_id_var.get()
    if run_id:
        extra["run_id"] = run_id

    stream_name = _stream_name_var.get()
    if stream_name:
        extra["stream_name"] = stream_name

    return extra


def _json_formatter(record: dict[str, Any]) -> str:
    """
    JSON 형식의 로그 포맷터

    로그 집계 시스템(ELK, Loki 등)과 호환됩니다.
    loguru는 반환된 문자열을 포맷 템플릿으로 사용하므로
    직렬화 결과를 extra에 넣고 참조합니다.
    """
    import orjson

    log_entry = {
        "timestamp": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
    }

    if record.get("extra"):
        for key, value in record["extra"].items():
            if key == "_json":
                continue
            log_entry[key] = value

    if record["exception"]:
        log_entry["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
        }

    record["extra"]["_json"] = orjson.dumps(log_entry, default=str).decode("utf-8")
    return "{extra[_json]}\n"


def _console_formatter(record: dict[str, Any]) -> str:
    """
    컬러 콘솔 형식의 로그 포맷터
    """
    fmt = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    fmt += "<level>{level: <8}</level> | "
    fmt += "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "

    extra_parts = []
    if record.get("extra"):
        if "run_id" in record["extra"]:
            extra_parts.append("<yellow>run={extra[run_id]}</yellow>")
        if "stream_name" in record["extra"]:
            extra_parts.append("<blue>stream={extra[stream_name]}</blue>")

    if extra_parts:
        fmt += " ".join(extra_parts) + " | "

    fmt += "<level>{message}</level>\n"

    if record["exception"]:
        fmt += "{exception}"

    return fmt


# 로그 레벨 매핑
_LOG_LEVELS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "WARN": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    로깅 설정을 초기화합니다.

    Args:
        level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            None이면 LOG_LEVEL 환경변수, 그것도 없으면 INFO
        json_output: JSON 형식 출력 여부 (None이면 환경변수로 결정)
        log_file: 로그 파일 경로 (None이면 stdout만 출력)

    환경변수:
        LOG_LEVEL: 로그 레벨 (level 인자가 없을 때만 사용)
        LOG_FORMAT: 로그 포맷 (json 또는 console, 기본: console)
        LOG_FILE: 로그 파일 경로
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    log_level = _LOG_LEVELS.get(level.upper(), "INFO")

    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "console").lower() == "json"

    if log_file is None:
        log_file = os.getenv("LOG_FILE")

    # 기존 핸들러 제거
    logger.remove()

    if json_output:
        logger.add(
            sys.stdout,
            format=_json_formatter,
            level=log_level,
            serialize=False,
        )
    else:
        logger.add(
            sys.stdout,
            format=_console_formatter,
            level=log_level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format=_json_formatter,
            level=log_level,
            rotation="10 MB",
            retention="7 days",
        )

    logger.debug(
        f"로깅 설정 완료: level={log_level}, json={json_output}, file={log_file}"
    )


class BoundLogger:
    """
    컨텍스트가 바인딩된 로거

    run_id, stream_name 컨텍스트와 호출 시 전달한 키워드 인자가
    extra 필드로 함께 기록됩니다.
    """

    def __init__(self, name: str) -> None:
        self._logger = logger.bind(name=name)

    def _get_extra(self, **kwargs: Any) -> dict[str, Any]:
        """로그에 포함할 extra 정보를 구성합니다."""
        extra = _get_context_extra()
        extra.update(kwargs)
        return extra

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.bind(**self._get_extra(**kwargs)).opt(depth=1).debug(message)

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.bind(**self._get_extra(**kwargs)).opt(depth=1).info(message)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.bind(**self._get_extra(**kwargs)).opt(depth=1).warning(message)

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.bind(**self._get_extra(**kwargs)).opt(depth=1).error(message)

    def exception(self, message: str, **kwargs: Any) -> None:
        """예외 정보와 함께 ERROR 레벨 로그를 기록합니다."""
        self._logger.bind(**self._get_extra(**kwargs)).opt(depth=1, exception=True).error(message)


@lru_cache(maxsize=128)
def get_logger(name: str) -> BoundLogger:
    """
    로거 인스턴스를 반환합니다.

    동일한 인자로 호출하면 캐시된 인스턴스를 반환합니다.

    Args:
        name: 로거 이름 (보통 __name__ 사용)

    Example:
        >>> logger = get_logger(__name__)
        >>> set_stream_context("words")
        >>> logger.info("스트림 생성")
    """
    return BoundLogger(name=name)


# 기본 로깅 설정 (모듈 임포트 시 실행)
# 진입점에서 configure_logging()을 호출하여 재설정 가능
if not os.getenv("STREAM_PROVISIONER_SKIP_DEFAULT_LOGGING"):
    configure_logging()
