class LeaveServiceError(Exception):
    """
    휴가 계층에서 발생하는 모든 업무 오류의 부모 클래스.
    status_code는 실패 응답(ApiResponse.from_error)의 HTTP 상태 코드로 쓰인다.
    """
    status_code = 400


class LeaveNotFoundError(LeaveServiceError):
    status_code = 404


class DuplicateLeaveError(LeaveServiceError):
    status_code = 409


class InvalidLeaveRequestError(LeaveServiceError):
    status_code = 400
