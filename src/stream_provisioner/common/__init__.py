"""
공통 유틸리티 모듈

에러 처리, 로깅 등 전체 애플리케이션에서 사용하는 공통 기능을 제공합니다.
"""

from stream_provisioner.common.errors import (
    ProvisionerError,
    ConfigError,
    TransportError,
    RemoteApiError,
    StreamError,
    CounterError,
    ErrorCode,
    error_code_for_status,
)
from stream_provisioner.common.logging import get_logger, configure_logging

__all__ = [
    # 에러
    "ProvisionerError",
    "ConfigError",
    "TransportError",
    "RemoteApiError",
    "StreamError",
    "CounterError",
    "ErrorCode",
    "error_code_for_status",
    # 로깅
    "get_logger",
    "configure_logging",
]
