"""
프로비저닝 패키지

wordcount 데모 스트림의 정리, 생성, 배포, 집계 보고 워크플로를 제공합니다.
"""

from stream_provisioner.application.provisioning.workflow import (
    AdminClientProtocol,
    CounterReport,
    ProvisioningReport,
    ProvisioningSettings,
    WordCountProvisioner,
)

__all__ = [
    "AdminClientProtocol",
    "CounterReport",
    "ProvisioningReport",
    "ProvisioningSettings",
    "WordCountProvisioner",
]
