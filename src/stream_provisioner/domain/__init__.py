"""
Domain Layer

원격 리소스의 데이터 모델과 상위 N개 집계 규칙을 정의합니다.
외부 라이브러리에 의존하지 않으며, 표준 라이브러리만 사용합니다.
"""

from stream_provisioner.domain.models import (
    Container,
    Counter,
    CounterEntry,
    DeleteOutcome,
    FieldValueCounter,
    StreamDefinition,
    StreamStatus,
    top_counts,
)

__all__ = [
    "Container",
    "Counter",
    "CounterEntry",
    "DeleteOutcome",
    "FieldValueCounter",
    "StreamDefinition",
    "StreamStatus",
    "top_counts",
]
