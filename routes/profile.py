import azure.functions as func
import logging
from utils.cors import json_response, message_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from schemas.base import parse_body
from schemas.auth import ProfilePatch, ChangePasswordIn, DeleteAccountIn

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="Profile")
@bp.route(route="profile", methods=["PATCH", "DELETE", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Profile")
def profile(req: func.HttpRequest) -> func.HttpResponse:
    """
    PATCH: update username, avatarUrl or email. A new email is held as pending
    until the code sent to it is verified.
    DELETE: remove the account after re-checking the password; clears the cookie.
    """
    ctx = get_context()
    user = require_caller(req)

    if req.method == "PATCH":
        patch = parse_body(ProfilePatch, get_json_body(req))
        result = ctx.profile.update_profile(user["id"], patch)

        message = "Profile updated successfully"
        if result["verificationSent"]:
            message = "Profile updated. Please verify your new email address."
        resp = json_response({"message": message, **result})
        if result["user"]["username"] != user["username"]:
            ctx.cookies.attach(resp, ctx.cookies.set_session_cookie(ctx.auth.refresh_token(user["id"])))
        return resp

    # DELETE
    data = parse_body(DeleteAccountIn, get_json_body(req))
    ctx.profile.delete_account(user["id"], data.password)
    resp = message_response("Account deleted successfully")
    return ctx.cookies.attach(resp, ctx.cookies.clear_session_cookie())


@bp.function_name(name="ProfilePassword")
@bp.route(route="profile/password", methods=["PATCH", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Change password")
def change_password(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    data = parse_body(ChangePasswordIn, get_json_body(req))
    ctx.profile.change_password(user["id"], data)
    return message_response("Password changed successfully")
