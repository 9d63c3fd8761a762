"""
카운터 모델

field-value 카운터와 상위 N개 집계 보고서를 위한 데이터 구조를 정의합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


DEFAULT_TOP_N = 10


class DeleteOutcome(str, Enum):
    """
    멱등 삭제 결과

    그 외의 실패는 예외로 전달됩니다.
    """

    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class Counter:
    """카운터 목록 항목 (MetricResource)."""

    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Counter":
        return cls(name=data["name"])


@dataclass(frozen=True)
class FieldValueCounter:
    """
    field-value 카운터

    Attributes:
        name: 카운터 이름
        field_value_counts: 관측된 필드 값 → 발생 횟수
    """

    name: str
    field_value_counts: dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.field_value_counts

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldValueCounter":
        counts = data.get("fieldValueCounts") or {}
        return cls(
            name=data["name"],
            field_value_counts={str(k): float(v) for k, v in counts.items()},
        )

    def top(self, limit: int = DEFAULT_TOP_N) -> list["CounterEntry"]:
        return top_counts(self.field_value_counts, limit)


@dataclass(frozen=True)
class CounterEntry:
    """보고서 한 줄 (필드 값, 횟수)."""

    value: str
    count: float

    def format(self) -> str:
        return f"'{self.value}' = {format_count(self.count)}"


def format_count(count: float) -> str:
    """정수 값이면 소수점 없이 출력합니다 (7.0 -> "7")."""
    if float(count).is_integer():
        return str(int(count))
    return str(count)


def top_counts(counts: Mapping[str, float], limit: int = DEFAULT_TOP_N) -> list[CounterEntry]:
    """
    횟수 내림차순으로 정렬한 상위 limit개 항목을 반환합니다.

    동률은 입력 순서를 유지합니다 (sorted는 reverse=True에서도 안정 정렬).

    Args:
        counts: 필드 값 → 횟수
        limit: 최대 항목 수

    Returns:
        CounterEntry 리스트
    """
    if limit <= 0:
        return []
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [CounterEntry(name, value) for name, value in ordered[:limit]]
