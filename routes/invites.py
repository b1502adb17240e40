import azure.functions as func
import logging
from utils.cors import json_response, message_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from schemas.base import parse_body
from schemas.lists import CreateInviteIn, UpdateInviteIn

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="ListInvites")
@bp.route(route="lists/{list_id}/invites", methods=["GET", "POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("List invites")
def list_invites(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")

    if req.method == "GET":
        return json_response({"invites": ctx.invites.list_active(list_id, user["id"])})

    # POST; an empty body takes the defaults
    body = get_json_body(req)
    data = parse_body(CreateInviteIn, body if body is not None else {})
    created = ctx.invites.create(list_id, user["id"], data.expires_in_hours, data.max_uses)
    return json_response({"message": "Invite created successfully", **created}, 201)


@bp.function_name(name="ListInvite")
@bp.route(route="lists/{list_id}/invites/{invite_id}", methods=["PATCH", "DELETE", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("List invite")
def list_invite(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    list_id = req.route_params.get("list_id")
    invite_id = req.route_params.get("invite_id")

    if req.method == "PATCH":
        data = parse_body(UpdateInviteIn, get_json_body(req))
        invite = ctx.invites.set_active(invite_id, list_id, user["id"], data.is_active)
        state = "activated" if invite["isActive"] else "deactivated"
        return json_response({"message": f"Invite {state} successfully", "invite": invite})

    # DELETE
    ctx.invites.delete(invite_id, list_id, user["id"])
    return message_response("Invite deleted successfully")


@bp.function_name(name="InviteDetails")
@bp.route(route="invites/{token}/details", methods=["GET", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Invite details")
def invite_details(req: func.HttpRequest) -> func.HttpResponse:
    """Preview for the join page. Read-only: nothing is consumed."""
    ctx = get_context()
    user = require_caller(req)
    details = ctx.invites.get_details(req.route_params.get("token"), user["id"])
    return json_response({"invite": details})


@bp.function_name(name="InviteAccept")
@bp.route(route="invites/{token}/accept", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Accept invite")
def accept_invite(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    joined = ctx.invites.accept(req.route_params.get("token"), user["id"])
    return json_response({
        "message": f"Successfully joined {joined['list']['name']}",
        **joined,
    })
