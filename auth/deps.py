import logging
from typing import Iterable, Optional

import azure.functions as func

from auth.session import SessionCookies
from db import Database
from errors import GuardResult, AppError, unauthenticated, user_not_found, not_found, forbidden
from models import User, ShoppingList, ListMember, MemberRole
from utils.ids import as_uuid
from utils.serializers import user_profile, member_view

logger = logging.getLogger(__name__)

EDITORS = frozenset({MemberRole.CREATOR, MemberRole.EDITOR})
CREATOR_ONLY = frozenset({MemberRole.CREATOR})


def role_allows(role: MemberRole, allowed: Optional[Iterable[MemberRole]]) -> bool:
    """`allowed=None` admits any member."""
    if allowed is None:
        return True
    return role in frozenset(allowed)


class AccessControl:
    """
    Per-request guards. Both are read-only and report failures as a
    GuardResult instead of raising, so each flow decides how to respond.
    """

    def __init__(self, database: Database, cookies: SessionCookies):
        self.db = database
        self.cookies = cookies

    def require_authenticated_caller(self, req: func.HttpRequest) -> GuardResult:
        claims = self.cookies.get_current_caller(req)
        if not claims:
            return GuardResult(None, unauthenticated())

        try:
            user_id = as_uuid(claims.get("id"), "User")
        except AppError:
            return GuardResult(None, unauthenticated())

        # Tokens outlive deletions; always re-read the row
        with self.db.session() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user:
                logger.info(f"Session token references missing user {user_id}")
                return GuardResult(None, user_not_found())
            return GuardResult(user_profile(user), None)

    def require_list_role(
        self,
        user_id,
        list_id,
        allowed_roles: Optional[Iterable[MemberRole]] = None,
    ) -> GuardResult:
        try:
            lid = as_uuid(list_id, "List")
            uid = as_uuid(user_id, "User")
        except AppError as e:
            return GuardResult(None, e)

        with self.db.session() as db:
            if db.query(ShoppingList.id).filter(ShoppingList.id == lid).first() is None:
                return GuardResult(None, not_found("List not found"))

            member = (
                db.query(ListMember)
                .filter(ListMember.list_id == lid, ListMember.user_id == uid)
                .first()
            )
            if not member:
                return GuardResult(None, forbidden("You are not a member of this list"))

            if not role_allows(member.role, allowed_roles):
                return GuardResult(None, forbidden("You do not have permission to perform this action"))

            return GuardResult(member_view(member, with_user=False), None)

    def assert_list_role(self, user_id, list_id, allowed_roles=None) -> dict:
        """Raising form of require_list_role for service code."""
        membership, error = self.require_list_role(user_id, list_id, allowed_roles)
        if error:
            raise error
        return membership
