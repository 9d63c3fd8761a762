"""
데이터 모델 모듈

스트림, 컨테이너, 카운터 등 원격 리소스의 로컬 표현을 정의합니다.
"""

from stream_provisioner.domain.models.counter import (
    Counter,
    CounterEntry,
    DeleteOutcome,
    FieldValueCounter,
    format_count,
    top_counts,
)
from stream_provisioner.domain.models.stream import (
    Container,
    StreamDefinition,
    StreamStatus,
)

__all__ = [
    # 스트림
    "Container",
    "StreamDefinition",
    "StreamStatus",
    # 카운터
    "Counter",
    "CounterEntry",
    "DeleteOutcome",
    "FieldValueCounter",
    "format_count",
    "top_counts",
]
