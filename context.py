# context.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from auth.deps import AccessControl
from auth.session import SessionCookies
from auth.token import TokenService
from config import Settings
from db import Database
from services.auth_service import AuthService
from services.email_service import EmailNotifier
from services.invite_service import InviteService
from services.item_service import ItemService
from services.list_service import ListService
from services.message_service import MessageService
from services.otp_service import OtpService
from services.profile_service import ProfileService
from utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    database: Database
    tokens: TokenService
    cookies: SessionCookies
    access: AccessControl
    otp: OtpService
    auth: AuthService
    profile: ProfileService
    lists: ListService
    items: ItemService
    messages: MessageService
    invites: InviteService


def build_context(
    settings: Settings,
    database: Optional[Database] = None,
    notifier=None,
    clock: Callable[[], datetime] = utcnow,
) -> AppContext:
    """Wire every service against one Database. Tests pass their own database, notifier and clock."""
    if database is None:
        database = Database(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    if notifier is None:
        notifier = EmailNotifier(settings)

    tokens = TokenService(settings.jwt_secret, settings.jwt_expiry, clock=clock)
    cookies = SessionCookies(tokens, secure=settings.is_production)
    access = AccessControl(database, cookies)
    otp = OtpService(database, notifier, ttl_minutes=settings.otp_ttl_minutes, clock=clock)

    return AppContext(
        settings=settings,
        database=database,
        tokens=tokens,
        cookies=cookies,
        access=access,
        otp=otp,
        auth=AuthService(database, tokens, otp),
        profile=ProfileService(database, otp, clock=clock),
        lists=ListService(database, access),
        items=ItemService(database, access, clock=clock),
        messages=MessageService(database, access, clock=clock),
        invites=InviteService(database, access, clock=clock),
    )


_context: Optional[AppContext] = None


def init_context(settings: Settings) -> AppContext:
    global _context
    if _context is None:
        _context = build_context(settings)
        logger.info("Application context initialised")
    return _context


def set_context(ctx: Optional[AppContext]) -> None:
    global _context
    _context = ctx


def get_context() -> AppContext:
    if _context is None:
        raise RuntimeError("Application context has not been initialised")
    return _context


def shutdown_context() -> None:
    global _context
    if _context is not None:
        _context.database.dispose()
        _context = None
