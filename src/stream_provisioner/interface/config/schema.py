"""
설정 스키마 (Pydantic v2)

config.json, 환경변수, CLI 인자를 병합한 설정을 검증하기 위한 스키마를 정의합니다.
"""

from __future__ import annotations

from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class HttpConfig(BaseModel):
    """관리 API HTTP 클라이언트 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    timeout_seconds: float = Field(10.0, description="요청 타임아웃 (초)")
    max_attempts: int = Field(1, description="연결 실패/타임아웃 시 최대 시도 횟수 (POST는 연결 실패만 재시도)")
    page_size: int = Field(100, description="목록 조회 페이지 크기")
    headers: dict[str, str] = Field(default_factory=dict, description="추가 헤더")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds는 0보다 커야 합니다")
        return value

    @field_validator("max_attempts", "page_size")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("1 이상이어야 합니다")
        return value


class WaitConfig(BaseModel):
    """
    스트림 배포 후 집계 대기 설정.

    fixed: fixed_seconds 동안 한 번 대기
    poll: 카운터가 비어있지 않을 때까지 지수 백오프로 조회 (timeout_seconds 제한)
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    strategy: Literal["fixed", "poll"] = Field("fixed", description="대기 전략")
    fixed_seconds: float = Field(8.0, description="고정 대기 시간 (초)")
    timeout_seconds: float = Field(60.0, description="폴링 최대 대기 시간 (초)")
    poll_min_seconds: float = Field(0.5, description="폴링 최소 간격 (초)")
    poll_max_seconds: float = Field(5.0, description="폴링 최대 간격 (초)")

    @model_validator(mode="after")
    def validate_values(self) -> "WaitConfig":
        if self.fixed_seconds < 0:
            raise ValueError("fixed_seconds는 0 이상이어야 합니다")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds는 0보다 커야 합니다")
        if self.poll_min_seconds <= 0:
            raise ValueError("poll_min_seconds는 0보다 커야 합니다")
        if self.poll_max_seconds < self.poll_min_seconds:
            raise ValueError("poll_max_seconds는 poll_min_seconds 이상이어야 합니다")
        return self


class AppConfig(BaseModel):
    """애플리케이션 전체 설정 스키마."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    admin_url: str = Field(..., description="관리 서버 URL (예: http://localhost:9393)")
    input_directory: str = Field(..., description="words 스트림이 읽을 입력 디렉터리")

    word_stream: str = Field("words", description="단어 분리 스트림 이름")
    wordcount_stream: str = Field("wordcount", description="단어 집계 탭 스트림 이름")
    counter_name: str = Field("wordcount", description="field-value 카운터 이름")
    top_n: int = Field(10, description="보고할 상위 항목 수")

    http: HttpConfig = Field(default_factory=HttpConfig, description="HTTP 클라이언트 설정")
    wait: WaitConfig = Field(default_factory=WaitConfig, description="집계 대기 설정")
    log_level: str = Field("INFO", description="로그 레벨")

    @field_validator("admin_url")
    @classmethod
    def validate_admin_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"admin_url 형식이 올바르지 않습니다: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"admin_url은 http(s) 절대 URL이어야 합니다: {value}")
        return value.rstrip("/")

    @field_validator("input_directory", "word_stream", "wordcount_stream", "counter_name")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("필수 필드는 비워둘 수 없습니다")
        return value

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, value: int) -> int:
        if value < 1:
            raise ValueError("top_n은 1 이상이어야 합니다")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}:
            raise ValueError(f"지원하지 않는 로그 레벨: {value}")
        return level

    @model_validator(mode="after")
    def validate_stream_names(self) -> "AppConfig":
        if self.word_stream == self.wordcount_stream:
            raise ValueError("word_stream과 wordcount_stream 이름이 같을 수 없습니다")
        return self
