import azure.functions as func
import logging
from utils.cors import json_response, message_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from schemas.base import parse_body
from schemas.items import CreateItemIn, ItemPatch

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="Items")
@bp.route(route="lists/{list_id}/items", methods=["GET", "POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Items")
def items(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")

    if req.method == "GET":
        return json_response({"items": ctx.items.list_items(user["id"], list_id)})

    # POST
    data = parse_body(CreateItemIn, get_json_body(req))
    item = ctx.items.create_item(user["id"], list_id, data)
    return json_response({"message": "Item added successfully", "item": item}, 201)


@bp.function_name(name="Item")
@bp.route(route="lists/{list_id}/items/{item_id}", methods=["PATCH", "DELETE", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Item")
def item(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")
    item_id = req.route_params.get("item_id")

    if req.method == "PATCH":
        patch = parse_body(ItemPatch, get_json_body(req))
        updated = ctx.items.update_item(user["id"], list_id, item_id, patch)
        return json_response({"message": "Item updated successfully", "item": updated})

    # DELETE
    ctx.items.delete_item(user["id"], list_id, item_id)
    return message_response("Item deleted successfully")
