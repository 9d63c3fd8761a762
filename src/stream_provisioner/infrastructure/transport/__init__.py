# -*- coding: utf-8 -*-
"""
Transport Infrastructure 패키지.

원격 관리 API 클라이언트를 담당합니다.
"""

from stream_provisioner.infrastructure.transport.xd_client import (
    XDAdminClient,
    format_deployment_properties,
)

__all__ = [
    "XDAdminClient",
    "format_deployment_properties",
]
