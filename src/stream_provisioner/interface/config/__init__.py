"""설정 스키마와 로더."""

from .loader import ConfigLoader, ENV_OVERRIDES
from .schema import AppConfig, HttpConfig, WaitConfig

__all__ = [
    "AppConfig",
    "ConfigLoader",
    "ENV_OVERRIDES",
    "HttpConfig",
    "WaitConfig",
]
