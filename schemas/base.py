from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from errors import validation_failed

M = TypeVar("M", bound=BaseModel)


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    details: dict[str, list[str]] = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "form"
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        details.setdefault(field, []).append(msg)
    return details


def parse_body(model: Type[M], data: Any) -> M:
    """Validate a JSON body, reporting failures as VALIDATION_FAILED with per-field messages."""
    if not isinstance(data, dict):
        raise validation_failed("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise validation_failed("Validation failed", field_errors(e))
