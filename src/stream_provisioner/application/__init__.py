"""
Application Layer

도메인 모델과 관리 API 클라이언트를 조합하여 프로비저닝 흐름을 수행합니다.
"""

from stream_provisioner.application.provisioning import (
    ProvisioningReport,
    ProvisioningSettings,
    WordCountProvisioner,
)

__all__ = [
    "ProvisioningReport",
    "ProvisioningSettings",
    "WordCountProvisioner",
]
