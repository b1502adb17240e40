import logging
from functools import wraps
from typing import Callable
import azure.functions as func

from context import get_context
from errors import AppError
from utils.cors import error_response, json_response, no_content

logger = logging.getLogger(__name__)


def handle_errors(action: str) -> Callable:
    """
    Wraps an HTTP trigger: answers OPTIONS preflights, maps AppError to its
    status and turns anything unexpected into a logged 500.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(req: func.HttpRequest) -> func.HttpResponse:
            # Handle OPTIONS requests
            if req.method == "OPTIONS":
                return no_content()

            try:
                return f(req)
            except AppError as e:
                return error_response(e)
            except Exception:
                logger.exception(f"{action} failed")
                return json_response({"error": "Internal server error", "code": "INTERNAL_FAILURE"}, 500)

        return decorated_function
    return decorator


def require_caller(req: func.HttpRequest) -> dict:
    """Profile of the signed-in user; raises UNAUTHENTICATED / USER_NOT_FOUND."""
    user, error = get_context().access.require_authenticated_caller(req)
    if error:
        raise error
    return user
