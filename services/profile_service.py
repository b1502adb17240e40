import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from auth.utils import hash_password, verify_password
from db import Database
from errors import conflict, invalid_credentials, user_not_found
from models import User
from schemas.auth import ProfilePatch, ChangePasswordIn
from services.otp_service import OtpService
from utils.clock import utcnow
from utils.ids import as_uuid
from utils.serializers import user_profile

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, database: Database, otp: OtpService, clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.otp = otp
        self.clock = clock

    def _load(self, db, user_id) -> User:
        user = db.query(User).filter(User.id == as_uuid(user_id, "User")).first()
        if not user:
            raise user_not_found()
        return user

    def update_profile(self, user_id, patch: ProfilePatch) -> dict:
        """
        Apply the fields present in `patch`. A new email is parked in
        pending_email and only replaces the current one once its code is verified.
        """
        verify_email = None

        with self.db.session() as db:
            user = self._load(db, user_id)

            new_username = patch.username if patch.provided("username") else None
            new_email = patch.email if patch.provided("email") else None
            if new_email and new_email == user.email:
                # back to the current address: drop any pending change
                user.pending_email = None
                user.verification_sent_at = None
                new_email = None

            clauses = []
            if new_username and new_username != user.username:
                clauses.append(User.username == new_username)
            if new_email:
                clauses.append(User.email == new_email)
            if clauses:
                taken = db.query(User).filter(User.id != user.id, or_(*clauses)).first()
                if taken:
                    if taken.username == new_username:
                        raise conflict("Username already taken")
                    raise conflict("Email already in use")

            if new_username:
                user.username = new_username
            if patch.provided("avatar_url"):
                user.avatar_url = patch.avatar_url
            if new_email:
                user.pending_email = new_email
                user.verification_sent_at = self.clock()
                verify_email = new_email

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise conflict("Username already taken")

        if verify_email:
            self.otp.issue(user.id, verify_email, required=True)
            logger.info(f"Email change requested for user {user.id}")

        return {"user": user_profile(user), "verificationSent": bool(verify_email)}

    def change_password(self, user_id, data: ChangePasswordIn) -> None:
        with self.db.session() as db:
            user = self._load(db, user_id)
            if not verify_password(data.current_password, user.password_hash):
                raise invalid_credentials("Current password is incorrect")
            user.password_hash = hash_password(data.new_password)
            db.commit()
        logger.info(f"Password changed for user {user_id}")

    def delete_account(self, user_id, password: str) -> None:
        with self.db.session() as db:
            user = self._load(db, user_id)
            if not verify_password(password, user.password_hash):
                raise invalid_credentials("Incorrect password")

            user_email = user.email
            logger.info(f"Deleting account for user: {user_email} (ID: {user.id})")
            # ORM cascades remove memberships, created lists, messages, items, invites and codes
            db.delete(user)
            db.commit()
        logger.info(f"Successfully deleted account: {user_email}")
