"""
stream_provisioner 진입점

설정 로드, 로깅 초기화, 관리 API 클라이언트 생성 후
wordcount 프로비저닝 워크플로를 실행합니다.

사용법:
    stream-provisioner --admin-url http://localhost:9393 --input-dir /tmp/xd/input
    stream-provisioner --config config.json --wait poll
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, Sequence

from stream_provisioner import __version__
from stream_provisioner.application.provisioning.workflow import (
    ProvisioningReport,
    WordCountProvisioner,
)
from stream_provisioner.common.errors import ProvisionerError
from stream_provisioner.common.logging import configure_logging, get_logger
from stream_provisioner.infrastructure.transport.xd_client import XDAdminClient
from stream_provisioner.interface.config.loader import ConfigLoader
from stream_provisioner.interface.config.schema import AppConfig

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream-provisioner",
        description="wordcount 데모 스트림을 프로비저닝하고 카운터 상위 값을 보고합니다",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH"),
        help="JSON 설정 파일 경로 (기본: CONFIG_PATH 또는 ./config.json)",
    )
    parser.add_argument("--admin-url", help="관리 서버 URL (XD_ADMIN_URL)")
    parser.add_argument("--input-dir", help="words 스트림 입력 디렉터리 (INPUT_DIRECTORY)")
    parser.add_argument(
        "--wait",
        choices=["fixed", "poll"],
        help="집계 대기 전략 (WAIT_STRATEGY)",
    )
    parser.add_argument("--top", type=int, help="카운터별 보고 항목 수")
    parser.add_argument("--log-level", help="로그 레벨 (LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "admin_url": args.admin_url,
        "input_directory": args.input_dir,
        "wait.strategy": args.wait,
        "top_n": args.top,
        "log_level": args.log_level,
    }


def create_client(config: AppConfig) -> XDAdminClient:
    """설정에서 관리 API 클라이언트를 생성합니다."""
    return XDAdminClient(
        config.admin_url,
        timeout_seconds=config.http.timeout_seconds,
        max_attempts=config.http.max_attempts,
        headers=config.http.headers,
        page_size=config.http.page_size,
    )


def run(config: AppConfig, loader: ConfigLoader) -> ProvisioningReport:
    """클라이언트를 열고 워크플로를 실행합니다. 실패 시에도 클라이언트는 닫힙니다."""
    settings = loader.to_runtime(config)
    with create_client(config) as client:
        logger.info(
            f"관리 서버: {client.base_url}",
            input_directory=settings.input_directory,
            wait_strategy=settings.wait_strategy,
        )
        try:
            return WordCountProvisioner(client, settings).run()
        finally:
            logger.info(
                "관리 API 호출 통계",
                requests=client.request_count,
                errors=client.error_count,
            )


def main(argv: Sequence[str] | None = None) -> int:
    """메인 진입점. 프로세스 종료 코드를 반환합니다."""
    args = build_parser().parse_args(argv)

    try:
        loader = ConfigLoader()
        config = loader.load(args.config, overrides=_overrides(args))
        configure_logging(level=config.log_level)
        run(config, loader)

    except KeyboardInterrupt:
        logger.info("사용자 중단")
        return EXIT_INTERRUPTED
    except ProvisionerError as e:
        logger.exception(
            f"프로비저닝 실패: {e.message}",
            code=e.code.value,
            details=e.details,
        )
        return EXIT_FAILURE
    except Exception as e:
        logger.exception("예기치 않은 오류", error=str(e))
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
