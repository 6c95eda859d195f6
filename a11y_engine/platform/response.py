from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
    error_code: Optional[str] = None,
) -> JSONResponse:
    """
    Envelope shared by every endpoint: status_code, status, message, data.

    Error responses (status_code >= 400) also carry ``error_code``, one of the
    ErrorCode values, so clients can branch without parsing the message.
    """
    content = {
        "status_code": status_code,
        "status": "success" if status_code < 400 else "error",
        "message": message,
        "data": jsonable_encoder(data) if data is not None else {},
    }
    if status_code >= 400:
        content["error_code"] = error_code or "error"
    return JSONResponse(status_code=status_code, content=content)
