"""
에러 처리 모듈

stream_provisioner 전체에서 사용하는 예외 클래스와 에러 코드를 정의합니다.
모든 예외는 ProvisionerError를 상속받아 일관된 에러 처리가 가능합니다.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    에러 코드 열거형

    원격 관리 API의 HTTP 상태 코드, 전송 오류, 설정 오류를 구분합니다.
    """

    # 스트림 관련
    STREAM_NOT_FOUND = "STREAM_NOT_FOUND"           # 스트림 없음
    STREAM_CREATE_FAILED = "STREAM_CREATE_FAILED"   # 스트림 생성 실패
    STREAM_DEPLOY_FAILED = "STREAM_DEPLOY_FAILED"   # 스트림 배포/해제 실패
    STREAM_DESTROY_FAILED = "STREAM_DESTROY_FAILED" # 스트림 정의 삭제 실패

    # 카운터 관련
    COUNTER_NOT_FOUND = "COUNTER_NOT_FOUND"         # 카운터 없음

    # 원격 API 응답 관련
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"       # 404
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"         # 409 (이름 중복 등)
    REMOTE_REJECTED = "REMOTE_REJECTED"             # 400, 422
    REMOTE_FAILED = "REMOTE_FAILED"                 # 5xx
    UNEXPECTED_RESPONSE = "UNEXPECTED_RESPONSE"     # 응답 형식 오류

    # 인증/권한 관련
    UNAUTHORIZED = "UNAUTHORIZED"                   # 401
    FORBIDDEN = "FORBIDDEN"                         # 403

    # 설정 관련
    CONFIG_INVALID = "CONFIG_INVALID"               # 설정 검증 실패
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"           # 설정 파일 없음
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"       # 설정 파싱 오류

    # 전송 관련
    TRANSPORT_FAILED = "TRANSPORT_FAILED"           # 연결 실패 등
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"         # 요청 타임아웃

    # 일반
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# HTTP 상태 코드 → 에러 코드 매핑
_HTTP_STATUS_TO_ERROR_CODE: dict[int, ErrorCode] = {
    400: ErrorCode.REMOTE_REJECTED,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.REMOTE_REJECTED,
}


def error_code_for_status(status_code: int) -> ErrorCode:
    """
    원격 API 응답의 HTTP 상태 코드에 해당하는 에러 코드를 반환합니다.

    Args:
        status_code: HTTP 상태 코드

    Returns:
        에러 코드 (매핑이 없으면 5xx는 REMOTE_FAILED, 4xx는 REMOTE_REJECTED)
    """
    code = _HTTP_STATUS_TO_ERROR_CODE.get(status_code)
    if code is not None:
        return code
    if status_code >= 500:
        return ErrorCode.REMOTE_FAILED
    if status_code >= 400:
        return ErrorCode.REMOTE_REJECTED
    return ErrorCode.UNKNOWN_ERROR


class ProvisionerError(Exception):
    """
    stream_provisioner 기본 예외 클래스

    모든 커스텀 예외의 부모 클래스입니다.
    에러 코드, 메시지, 상세 정보를 포함합니다.

    Attributes:
        code: 에러 코드 (ErrorCode)
        message: 사용자에게 표시할 메시지
        details: 추가 상세 정보 (디버깅용)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """예외 정보를 딕셔너리로 변환합니다 (JSON 로그용)."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class ConfigError(ProvisionerError):
    """
    설정 관련 예외

    설정 파일의 로드, 파싱, 검증 중 발생하는 오류를 나타냅니다.

    Attributes:
        config_path: 오류가 발생한 설정 파일 경로 (선택)
        field_name: 오류가 발생한 필드 이름 (선택)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        config_path: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_path = config_path
        self.field_name = field_name
        _details: dict[str, Any] = {}
        if config_path:
            _details["config_path"] = config_path
        if field_name:
            _details["field_name"] = field_name
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class TransportError(ProvisionerError):
    """
    전송 관련 예외

    원격 관리 API에 도달하지 못한 경우(연결 실패, 타임아웃)를 나타냅니다.

    Attributes:
        method: HTTP 메서드
        target_url: 대상 URL
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        method: str,
        target_url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.method = method
        self.target_url = target_url
        _details: dict[str, Any] = {"method": method}
        if target_url:
            _details["target_url"] = target_url
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class RemoteApiError(ProvisionerError):
    """
    원격 API 오류 응답

    관리 서버가 4xx/5xx로 응답한 경우입니다.
    서버가 보낸 logref/message는 details에 포함됩니다.

    Attributes:
        status_code: HTTP 상태 코드
        method: HTTP 메서드
        target_url: 대상 URL
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        method: str,
        target_url: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.method = method
        self.target_url = target_url
        _details: dict[str, Any] = {
            "status_code": status_code,
            "method": method,
            "target_url": target_url,
        }
        if details:
            _details.update(details)
        super().__init__(error_code_for_status(status_code), message, _details)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class StreamError(ProvisionerError):
    """
    스트림 관련 예외

    스트림 생성, 배포, 해제, 삭제 중 발생하는 오류를 나타냅니다.

    Attributes:
        stream_name: 오류가 발생한 스트림 이름
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        stream_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.stream_name = stream_name
        _details = {"stream_name": stream_name}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class CounterError(ProvisionerError):
    """
    카운터 관련 예외

    Attributes:
        counter_name: 오류가 발생한 카운터 이름
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        counter_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.counter_name = counter_name
        _details = {"counter_name": counter_name}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)
