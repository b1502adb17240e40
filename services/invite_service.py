import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from auth.deps import AccessControl, CREATOR_ONLY
from db import Database
from errors import not_found, forbidden, gone, conflict, validation_failed
from models import Invite, ListMember, MemberRole, ShoppingList
from utils.clock import utcnow
from utils.ids import as_uuid
from utils.serializers import invite_view, member_view, list_summary

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN_HOURS = 24
MIN_EXPIRES_IN_HOURS, MAX_EXPIRES_IN_HOURS = 1, 168
MIN_MAX_USES, MAX_MAX_USES = 1, 100


def invite_url(token: str) -> str:
    # path only; the client prefixes its own origin
    return f"/invite/{token}"


class InviteService:
    def __init__(self, database: Database, access: AccessControl, clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.access = access
        self.clock = clock

    # ───────────── creator actions ─────────────────────────────
    def create(
        self,
        list_id,
        creator_id,
        expires_in_hours: Optional[int] = DEFAULT_EXPIRES_IN_HOURS,
        max_uses: Optional[int] = None,
    ) -> dict:
        self.access.assert_list_role(creator_id, list_id, CREATOR_ONLY)

        if expires_in_hours is None:
            expires_in_hours = DEFAULT_EXPIRES_IN_HOURS
        if (
            isinstance(expires_in_hours, bool)
            or not isinstance(expires_in_hours, int)
            or not MIN_EXPIRES_IN_HOURS <= expires_in_hours <= MAX_EXPIRES_IN_HOURS
        ):
            raise validation_failed(
                "Expiry time must be between 1 and 168 hours",
                {"expiresInHours": ["Expiry time must be between 1 and 168 hours"]},
            )
        if max_uses is not None and (
            isinstance(max_uses, bool)
            or not isinstance(max_uses, int)
            or not MIN_MAX_USES <= max_uses <= MAX_MAX_USES
        ):
            raise validation_failed(
                "Max uses must be between 1 and 100",
                {"maxUses": ["Max uses must be between 1 and 100"]},
            )

        with self.db.session() as db:
            invite = Invite(
                list_id=as_uuid(list_id, "List"),
                created_by_id=as_uuid(creator_id, "User"),
                expires_at=self.clock() + timedelta(hours=expires_in_hours),
                max_uses=max_uses,
                used_count=0,
                is_active=True,
            )
            db.add(invite)
            db.commit()
            logger.info(f"Invite {invite.id} created for list {invite.list_id}")
            return {"invite": invite_view(invite), "inviteUrl": invite_url(invite.token)}

    def list_active(self, list_id, requester_id) -> list[dict]:
        """Invites that have not expired yet, newest first. Deactivated ones are included."""
        self.access.assert_list_role(requester_id, list_id, CREATOR_ONLY)
        with self.db.session() as db:
            rows = (
                db.query(Invite)
                .filter(Invite.list_id == as_uuid(list_id, "List"), Invite.expires_at > self.clock())
                .order_by(Invite.created_at.desc())
                .all()
            )
            return [invite_view(i) for i in rows]

    def _owned_invite(self, db, invite_id, list_id) -> Invite:
        invite = db.query(Invite).filter(Invite.id == as_uuid(invite_id, "Invite")).first()
        if not invite:
            raise not_found("Invite not found")
        if invite.list_id != as_uuid(list_id, "List"):
            raise forbidden("Invite does not belong to this list")
        return invite

    def set_active(self, invite_id, list_id, requester_id, is_active: bool) -> dict:
        self.access.assert_list_role(requester_id, list_id, CREATOR_ONLY)
        if not isinstance(is_active, bool):
            raise validation_failed("isActive must be a boolean", {"isActive": ["isActive must be a boolean"]})

        with self.db.session() as db:
            invite = self._owned_invite(db, invite_id, list_id)
            invite.is_active = is_active
            db.commit()
            return invite_view(invite)

    def deactivate(self, invite_id, list_id, requester_id) -> dict:
        return self.set_active(invite_id, list_id, requester_id, False)

    def delete(self, invite_id, list_id, requester_id) -> None:
        self.access.assert_list_role(requester_id, list_id, CREATOR_ONLY)
        with self.db.session() as db:
            invite = self._owned_invite(db, invite_id, list_id)
            db.delete(invite)
            db.commit()
            logger.info(f"Invite {invite_id} deleted from list {list_id}")

    # ───────────── invitee actions ─────────────────────────────
    def _check_eligibility(self, db, token: str, user_id) -> Invite:
        """existence → active → not expired → under capacity → not a member → list not full"""
        invite = db.query(Invite).filter(Invite.token == (token or "")).first()
        if not invite:
            raise not_found("Invalid invite link. This invitation may have been deleted.")
        if not invite.is_active:
            raise gone("This invite link has been deactivated by the list creator.")
        if invite.is_expired(self.clock()):
            raise gone("This invite has expired. Please ask for a new invite link.")
        if invite.is_at_capacity:
            raise gone("This invite has reached its maximum capacity. No more members can join.")

        existing = (
            db.query(ListMember.id)
            .filter(ListMember.list_id == invite.list_id, ListMember.user_id == user_id)
            .first()
        )
        if existing:
            raise conflict("You are already a member of this list.")
        if self._list_is_full(db, invite.list_id):
            raise gone("This list has reached its maximum number of members.")
        return invite

    def _list_is_full(self, db, list_id) -> bool:
        cap = db.query(ShoppingList.member_cap).filter(ShoppingList.id == list_id).scalar()
        if cap is None:
            return False
        return self._member_count(db, list_id) >= cap

    @staticmethod
    def _member_count(db, list_id) -> int:
        return db.query(func.count(ListMember.id)).filter(ListMember.list_id == list_id).scalar()

    def get_details(self, token: str, user_id) -> dict:
        uid = as_uuid(user_id, "User")
        with self.db.session() as db:
            invite = self._check_eligibility(db, token, uid)
            lst = db.query(ShoppingList).filter(ShoppingList.id == invite.list_id).one()
            member_count = self._member_count(db, invite.list_id)
            return {
                "token":     invite.token,
                "expiresAt": invite.expires_at.isoformat(),
                "maxUses":   invite.max_uses,
                "usedCount": invite.used_count,
                "list": {
                    "id":          str(lst.id),
                    "name":        lst.name,
                    "memberCount": member_count,
                },
            }

    def accept(self, token: str, user_id) -> dict:
        uid = as_uuid(user_id, "User")
        with self.db.session() as db:
            # preview may be stale; re-check everything at commit time
            invite = self._check_eligibility(db, token, uid)
            now = self.clock()

            # capacity, activity and expiry asserted again inside the UPDATE so
            # concurrent redemptions cannot overshoot max_uses
            claimed = (
                db.query(Invite)
                .filter(
                    Invite.id == invite.id,
                    Invite.is_active.is_(True),
                    Invite.expires_at > now,
                    or_(Invite.max_uses.is_(None), Invite.used_count < Invite.max_uses),
                )
                .update({Invite.used_count: Invite.used_count + 1}, synchronize_session=False)
            )
            if claimed == 0:
                db.rollback()
                logger.info(f"Invite {invite.id} could not be claimed at commit time")
                raise gone("This invite is no longer available.")

            member = ListMember(list_id=invite.list_id, user_id=uid, role=MemberRole.EDITOR)
            db.add(member)
            try:
                db.flush()
                cap = db.query(ShoppingList.member_cap).filter(ShoppingList.id == invite.list_id).scalar()
                if cap is not None and self._member_count(db, invite.list_id) > cap:
                    db.rollback()
                    logger.info(f"List {invite.list_id} filled up before user {uid} could join")
                    raise gone("This list has reached its maximum number of members.")
                db.commit()
            except IntegrityError:
                db.rollback()
                raise conflict("You are already a member of this list.")

            lst = db.query(ShoppingList).filter(ShoppingList.id == invite.list_id).one()
            logger.info(f"User {uid} joined list {lst.id} via invite {invite.id}")
            return {"member": member_view(member), "list": list_summary(lst)}
