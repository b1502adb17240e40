import azure.functions as func
import logging
from utils.cors import json_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from schemas.base import parse_body
from schemas.messages import CreateMessageIn

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="Messages")
@bp.route(route="lists/{list_id}/messages", methods=["GET", "POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Messages")
def messages(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET ?limit=&cursor= returns one page, oldest first, plus `nextCursor`
    for the page before it. POST sends a chat message.
    """
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")

    if req.method == "GET":
        page = ctx.messages.list_messages(
            user["id"],
            list_id,
            limit=req.params.get("limit"),
            cursor=req.params.get("cursor"),
        )
        return json_response(page)

    # POST
    data = parse_body(CreateMessageIn, get_json_body(req))
    message = ctx.messages.post_message(user["id"], list_id, data)
    return json_response({"message": "Message sent successfully", "data": message}, 201)


@bp.function_name(name="Mentions")
@bp.route(route="lists/{list_id}/mentions", methods=["GET", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Mentions")
def mentions(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    result = ctx.messages.mentions(user["id"], req.route_params.get("list_id"), req.params.get("q"))
    return json_response(result)
