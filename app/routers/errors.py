"""
服务层异常到 HTTP 响应的转换
"""
from fastapi import HTTPException, status
from app.services.exceptions import NotFoundError, ConflictError


def http_error(e: ValueError) -> HTTPException:
    """NotFoundError -> 404，ConflictError -> 409（带 outcome 与 details），其它 ValueError -> 400"""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ConflictError):
        detail = {"message": e.message, "details": e.details}
        if e.outcome:
            detail["outcome"] = e.outcome
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
