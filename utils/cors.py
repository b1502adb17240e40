import json
import os
from typing import Any, Optional, Union
import azure.functions as func

from errors import AppError

ALLOWED_METHODS = "GET,POST,PATCH,DELETE,OPTIONS"


def _cors_headers() -> dict:
    # cookies only ride along when the origin is explicit
    origin = os.getenv("CORS_ORIGIN", "*")
    headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }
    if origin != "*":
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"
    return headers


def cors_response(
    body: Union[str, bytes] = b"",
    status: int = 200,
    mime: str = "text/plain"
) -> func.HttpResponse:
    return func.HttpResponse(
        body=body,
        status_code=status,
        mimetype=mime,
        headers=_cors_headers(),
    )


def json_response(payload: Any, status: int = 200) -> func.HttpResponse:
    return cors_response(json.dumps(payload), status, "application/json")


def error_response(error: AppError) -> func.HttpResponse:
    return json_response(error.to_dict(), error.status)


def message_response(message: str, status: int = 200, **extra: Any) -> func.HttpResponse:
    return json_response({"message": message, **extra}, status)


def no_content() -> func.HttpResponse:
    return cors_response(b"", 204)


def get_json_body(req: func.HttpRequest) -> Optional[Any]:
    try:
        return req.get_json()
    except ValueError:
        return None
