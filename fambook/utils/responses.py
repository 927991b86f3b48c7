from typing import Any

from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str = "OK", status_code: int = 200) -> JSONResponse:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created(data: Any = None, message: str = "Created") -> JSONResponse:
    return ok(data, message, status_code=201)


def no_content() -> Response:
    return Response(status_code=204)


def paginate(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "hasMore": page * limit < total,
    }
