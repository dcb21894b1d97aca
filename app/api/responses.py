"""
Response envelope shared by every route.

Business success is code 200 and business failure code 300, both sent with
HTTP 200. Rejected input and missing records are code 400, unexpected
errors code 500.
"""
from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

SUCCESS = 200
BUSINESS_FAILURE = 300
BAD_REQUEST = 400
SERVER_ERROR = 500


def envelope(code: int, message: str, data: Any = None,
             status_code: int = status.HTTP_200_OK) -> JSONResponse:
    content = {"code": code, "message": message}
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def success(message: str, data: Any = None) -> JSONResponse:
    return envelope(SUCCESS, message, data)


def failure(message: str, data: Any = None) -> JSONResponse:
    return envelope(BUSINESS_FAILURE, message, data)


def outcome(succeeded: bool, message: str, data: Optional[Any] = None) -> JSONResponse:
    """Success or business failure envelope for a service result."""
    return success(message, data) if succeeded else failure(message, data)


def bad_request(message: str) -> JSONResponse:
    return envelope(BAD_REQUEST, message, status_code=status.HTTP_400_BAD_REQUEST)


def server_error(message: str) -> JSONResponse:
    return envelope(SERVER_ERROR, message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
