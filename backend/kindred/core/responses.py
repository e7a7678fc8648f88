"""
JSON envelope helpers shared by every endpoint.
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any = None, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)


def error_response(error: str, status_code: int = 400, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        content={"success": False, "error": error},
        status_code=status_code,
        headers=headers,
    )


def paginate(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }
