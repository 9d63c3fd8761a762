# -*- coding: utf-8 -*-
"""
Infrastructure Layer 패키지.

외부 시스템과의 통신을 담당합니다:
- transport: 관리 API HTTP 클라이언트
"""

from stream_provisioner.infrastructure.transport.xd_client import XDAdminClient

__all__ = [
    "XDAdminClient",
]
