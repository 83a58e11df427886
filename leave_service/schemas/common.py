from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, PrivateAttr

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    모든 공개 연산의 반환 형식.
    성공: {"success": true, "data": ...}
    실패: {"success": false, "error": "..."}

    status_code는 응답 바디에 포함되지 않고, REST 라우터가 HTTP 상태 코드를 정할 때만 쓴다.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    _status_code: int = PrivateAttr(default=200)

    @property
    def status_code(self) -> int:
        return self._status_code

    @classmethod
    def ok(cls, data: Optional[T] = None, status_code: int = 200) -> "ApiResponse[T]":
        response = cls(success=True, data=data)
        response._status_code = status_code
        return response

    @classmethod
    def fail(cls, error: str, status_code: int = 400) -> "ApiResponse[T]":
        response = cls(success=False, error=error)
        response._status_code = status_code
        return response

    @classmethod
    def from_error(cls, exc: Exception) -> "ApiResponse[T]":
        # LeaveServiceError 계열은 자체 status_code를 가진다
        return cls.fail(str(exc), status_code=getattr(exc, "status_code", 400))
