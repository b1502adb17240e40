import azure.functions as func
import logging
from utils.cors import json_response, message_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from schemas.base import parse_body
from schemas.lists import ListNameIn

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="Lists")
@bp.route(route="lists", methods=["GET", "POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Lists")
def lists(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)

    if req.method == "GET":
        return json_response({"lists": ctx.lists.list_for_user(user["id"])})

    # POST
    data = parse_body(ListNameIn, get_json_body(req))
    created = ctx.lists.create_list(user["id"], data.name)
    return json_response({"message": "List created successfully", "list": created}, 201)


@bp.function_name(name="ListDetail")
@bp.route(route="lists/{list_id}", methods=["GET", "PATCH", "DELETE", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("List")
def list_detail(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")

    if req.method == "GET":
        return json_response({"list": ctx.lists.get_list(user["id"], list_id)})

    if req.method == "PATCH":
        data = parse_body(ListNameIn, get_json_body(req))
        updated = ctx.lists.rename_list(user["id"], list_id, data.name)
        return json_response({"message": "List updated successfully", "list": updated})

    # DELETE
    ctx.lists.delete_list(user["id"], list_id)
    return message_response("List deleted successfully")


@bp.function_name(name="ListMembers")
@bp.route(route="lists/{list_id}/members", methods=["GET", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("List members")
def list_members(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    members = ctx.lists.list_members(user["id"], req.route_params.get("list_id"))
    return json_response({"members": members})


@bp.function_name(name="ListMember")
@bp.route(route="lists/{list_id}/members/{member_id}", methods=["DELETE", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Remove member")
def remove_member(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    result = ctx.lists.remove_member(
        user["id"],
        req.route_params.get("list_id"),
        req.route_params.get("member_id"),
    )
    return json_response(result)
