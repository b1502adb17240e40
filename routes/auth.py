import azure.functions as func
import logging
from utils.cors import json_response, message_response, get_json_body
from auth.middleware import handle_errors, require_caller
from context import get_context
from errors import forbidden
from schemas.base import parse_body
from schemas.auth import RegisterIn, LoginIn, SendOtpIn, VerifyOtpIn

logger = logging.getLogger(__name__)
bp = func.Blueprint()


def _check_same_user(user: dict, claimed_id) -> None:
    if claimed_id and str(claimed_id) != user["id"]:
        raise forbidden("You can only verify your own email")


@bp.function_name(name="Register")
@bp.route(route="auth/register", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Register")
def register(req: func.HttpRequest) -> func.HttpResponse:
    """
    Create an account and sign it in.

    The verification code email is best effort here: the account is kept
    even when delivery fails, and `otpIssued` tells the client to offer a resend.

    Raises:
        400: Validation failed
        409: Email or username already registered
    """
    ctx = get_context()
    data = parse_body(RegisterIn, get_json_body(req))
    result = ctx.auth.register(data)

    resp = json_response({
        "message":   "Account created successfully",
        "user":      result["user"],
        "otpIssued": result["otpIssued"],
    }, 201)
    return ctx.cookies.attach(resp, ctx.cookies.set_session_cookie(result["token"]))


@bp.function_name(name="Login")
@bp.route(route="auth/login", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Login")
def login(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    data = parse_body(LoginIn, get_json_body(req))
    result = ctx.auth.login(data)

    resp = json_response({"message": "Login successful", "user": result["user"]})
    return ctx.cookies.attach(resp, ctx.cookies.set_session_cookie(result["token"]))


@bp.function_name(name="Logout")
@bp.route(route="auth/logout", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Logout")
def logout(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    resp = message_response("Logged out successfully")
    return ctx.cookies.attach(resp, ctx.cookies.clear_session_cookie())


@bp.function_name(name="Me")
@bp.route(route="auth/me", methods=["GET", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Get current user")
def me(req: func.HttpRequest) -> func.HttpResponse:
    user = require_caller(req)
    return json_response({"user": user})


@bp.function_name(name="SendOtp")
@bp.route(route="auth/send-otp", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Send OTP")
def send_otp(req: func.HttpRequest) -> func.HttpResponse:
    """
    Resend a verification code to the account email or the pending new email.
    Unlike registration, a delivery failure is reported as a 500.
    """
    ctx = get_context()
    user = require_caller(req)
    data = parse_body(SendOtpIn, get_json_body(req))
    _check_same_user(user, data.user_id)

    return json_response(ctx.auth.send_otp(user["id"], data.email))


@bp.function_name(name="VerifyOtp")
@bp.route(route="auth/verify-otp", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
@handle_errors("Verify OTP")
def verify_otp(req: func.HttpRequest) -> func.HttpResponse:
    ctx = get_context()
    user = require_caller(req)
    data = parse_body(VerifyOtpIn, get_json_body(req))
    _check_same_user(user, data.user_id)

    result = ctx.auth.verify_otp(user["id"], data.code)
    resp = json_response({
        "message":      "Email verified successfully",
        "user":         ctx.auth.get_current_user(user["id"]),
        "emailChanged": result["emailChanged"],
    })
    if result["emailChanged"]:
        # the old token still carries the previous address
        ctx.cookies.attach(resp, ctx.cookies.set_session_cookie(ctx.auth.refresh_token(user["id"])))
    return resp
