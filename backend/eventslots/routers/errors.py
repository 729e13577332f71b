from fastapi import HTTPException, status

from ..domain.errors import DomainError, ErrorCode

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BAN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_NOT_BOOKABLE: status.HTTP_409_CONFLICT,
    ErrorCode.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXHAUSTED: status.HTTP_409_CONFLICT,
    ErrorCode.STALE_EVENT: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRANT_BANNED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_WINDOW: 422,
    ErrorCode.INVALID_STATUS_TRANSITION: 422,
    ErrorCode.PERSISTENCE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: DomainError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": exc.code.value, "message": exc.message},
    )
