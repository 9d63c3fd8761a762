"""
설정 로더

config.json(선택), 환경변수, CLI 인자를 순서대로 병합하고
Pydantic 스키마로 검증합니다. 뒤에 적용된 값이 우선합니다.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stream_provisioner.application.provisioning.workflow import ProvisioningSettings
from stream_provisioner.common.errors import ConfigError, ErrorCode
from stream_provisioner.common.logging import get_logger

from .schema import AppConfig

logger = get_logger(__name__)


# 환경변수 → 설정 키 경로
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "XD_ADMIN_URL": ("admin_url",),
    "INPUT_DIRECTORY": ("input_directory",),
    "LOG_LEVEL": ("log_level",),
    "WAIT_STRATEGY": ("wait", "strategy"),
    "WAIT_SECONDS": ("wait", "fixed_seconds"),
    "HTTP_TIMEOUT_SECONDS": ("http", "timeout_seconds"),
}


def _set_path(data: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    target = data
    for depth, key in enumerate(path[:-1], start=1):
        target = target.setdefault(key, {})
        if not isinstance(target, dict):
            # "wait": null 처럼 섹션이 객체가 아닌 경우
            section = ".".join(path[:depth])
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                f"설정 섹션 {section}은(는) 객체여야 합니다",
                field_name=section,
            )
    target[path[-1]] = value


class ConfigLoader:
    """config.json 로딩, 덮어쓰기 병합, 검증을 담당합니다."""

    def __init__(
        self,
        default_path: str = "config.json",
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._default_path = Path(default_path)
        self._environ = os.environ if environ is None else environ

    def load(
        self,
        path: str | Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> AppConfig:
        """
        파일 → 환경변수 → overrides 순으로 병합하여 설정을 반환합니다.

        path를 명시했는데 파일이 없으면 CONFIG_NOT_FOUND입니다.
        기본 경로(config.json)는 없으면 건너뜁니다.

        Args:
            path: 설정 파일 경로
            overrides: CLI 등에서 전달된 값 (점 표기 키 허용: "wait.strategy")
        """
        config_path: str | None = None
        data: dict[str, Any] = {}

        if path is not None:
            data = self.read_file(path)
            config_path = str(path)
        elif self._default_path.exists():
            data = self.read_file(self._default_path)
            config_path = str(self._default_path)

        for env_name, key_path in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                _set_path(data, key_path, value)

        for key, value in (overrides or {}).items():
            if value is not None:
                _set_path(data, tuple(key.split(".")), value)

        config = self.load_from_dict(data, config_path=config_path)
        logger.debug("설정 로드 완료", config_path=config_path, admin_url=config.admin_url)
        return config

    def read_file(self, path: str | Path) -> dict[str, Any]:
        """JSON 설정 파일을 읽습니다."""
        target = Path(path)

        if not target.exists():
            raise ConfigError(
                ErrorCode.CONFIG_NOT_FOUND,
                f"설정 파일을 찾을 수 없습니다: {target}",
                config_path=str(target),
            )

        try:
            data = json.loads(target.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                f"설정 파일 파싱에 실패했습니다: {e}",
                config_path=str(target),
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                "설정 파일의 최상위 값은 객체여야 합니다",
                config_path=str(target),
            )
        return data

    def load_from_dict(
        self,
        data: dict[str, Any],
        config_path: str | None = None,
    ) -> AppConfig:
        """딕셔너리에서 설정을 검증합니다."""
        try:
            return AppConfig.model_validate(data)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            logger.error("설정 검증 실패", errors=errors, config_path=config_path)
            first = errors[0] if errors else {}
            field_name = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                f"설정 검증에 실패했습니다: {first.get('msg', e)}",
                config_path=config_path,
                field_name=field_name,
                details={"errors": errors},
            ) from e

    def to_runtime(self, config: AppConfig) -> ProvisioningSettings:
        """Application Layer에서 사용하는 런타임 설정으로 변환합니다."""
        return ProvisioningSettings(
            input_directory=config.input_directory,
            word_stream=config.word_stream,
            wordcount_stream=config.wordcount_stream,
            counter_name=config.counter_name,
            top_n=config.top_n,
            wait_strategy=config.wait.strategy,
            wait_seconds=config.wait.fixed_seconds,
            poll_timeout_seconds=config.wait.timeout_seconds,
            poll_min_seconds=config.wait.poll_min_seconds,
            poll_max_seconds=config.wait.poll_max_seconds,
        )
