"""
스트림 모델

원격 플랫폼의 스트림 정의와 컨테이너(워커 노드)를 나타내는 데이터 구조를 정의합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StreamStatus(str, Enum):
    """
    스트림 배포 상태

    관리 서버가 보고하는 상태 문자열입니다. 알 수 없는 값은 UNKNOWN으로 처리합니다.
    """

    UNDEPLOYED = "undeployed"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    INCOMPLETE = "incomplete"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "StreamStatus":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class StreamDefinition:
    """
    스트림 정의

    Attributes:
        name: 스트림 고유 이름
        definition: 파이프라인 DSL (예: "file | splitter | log")
        status: 배포 상태
    """

    name: str
    definition: str
    status: StreamStatus = StreamStatus.UNKNOWN

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("스트림 이름은 필수입니다")

    @property
    def is_deployed(self) -> bool:
        return self.status in (StreamStatus.DEPLOYED, StreamStatus.DEPLOYING, StreamStatus.INCOMPLETE)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StreamDefinition":
        """관리 API 응답(StreamDefinitionResource)에서 생성합니다."""
        return cls(
            name=data["name"],
            definition=data.get("definition", ""),
            status=StreamStatus.parse(data.get("status")),
        )


@dataclass(frozen=True)
class Container:
    """
    컨테이너 (원격 워커 프로세스)

    진단 로그 용도로만 사용하며 읽기 전용입니다.

    Attributes:
        container_id: 컨테이너 ID
        host: 호스트 이름
        ip: IP 주소
        groups: 컨테이너 그룹 (쉼표 구분 문자열)
        deployment_size: 배포된 모듈 수
        attributes: 서버가 보고한 전체 속성
    """

    container_id: str
    host: str | None = None
    ip: str | None = None
    groups: str = ""
    deployment_size: int = 0
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Container":
        """관리 API 응답(DetailedContainerResource)에서 생성합니다."""
        attributes = dict(data.get("attributes") or {})
        container_id = data.get("containerId") or attributes.get("id") or ""
        return cls(
            container_id=str(container_id),
            host=attributes.get("host"),
            ip=attributes.get("ip"),
            groups=data.get("groups") or attributes.get("groups") or "",
            deployment_size=int(data.get("deploymentSize") or 0),
            attributes=attributes,
        )

    def __str__(self) -> str:
        return (
            f"Container(id={self.container_id}, host={self.host}, ip={self.ip}, "
            f"groups={self.groups!r}, deployments={self.deployment_size})"
        )
