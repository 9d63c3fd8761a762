"""
stream_provisioner - 스트림 처리 플랫폼 관리 API 데모 클라이언트

원격 클러스터에 단어 분리(words) 스트림과 단어 집계(wordcount) 탭 스트림을
프로비저닝하고, field-value 카운터의 상위 집계 결과를 보고합니다.
"""

__version__ = "0.1.0"

from stream_provisioner.common.errors import (
    ProvisionerError,
    ConfigError,
    TransportError,
    RemoteApiError,
    StreamError,
    CounterError,
    ErrorCode,
)
from stream_provisioner.common.logging import get_logger

__all__ = [
    "__version__",
    "ProvisionerError",
    "ConfigError",
    "TransportError",
    "RemoteApiError",
    "StreamError",
    "CounterError",
    "ErrorCode",
    "get_logger",
]
