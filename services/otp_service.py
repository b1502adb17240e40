import secrets
import logging
from datetime import datetime, timedelta
from typing import Callable, NamedTuple

from sqlalchemy.exc import IntegrityError

from db import Database
from errors import invalid_code, expired, user_not_found, conflict, internal_failure
from models import User, OtpCode
from services.email_service import mask_address
from utils.clock import utcnow
from utils.ids import as_uuid

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 10


class IssuedCode(NamedTuple):
    id: str
    email: str
    code: str  # returned for tests and internal callers; never put it in a response
    expires_at: datetime
    delivered: bool


class OtpService:
    """
    Email verification codes. Issuing a code deletes every unused code the user
    already has, so at most one code can ever verify. Verification is a single
    transaction that consumes the code and flips the user's verification state.
    """

    def __init__(
        self,
        database: Database,
        notifier,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = database
        self.notifier = notifier
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    @staticmethod
    def generate_code() -> str:
        return str(100000 + secrets.randbelow(900000))

    def issue(self, user_id, email: str, *, required: bool = True) -> IssuedCode:
        """
        Create (or replace) the user's code for `email`, then email it.

        The stored code survives a delivery failure. With required=False the
        failure is only logged (registration); otherwise it surfaces as an
        internal failure so the caller knows the resend did not go out.
        """
        uid = as_uuid(user_id, "User")
        email = (email or "").strip().lower()

        with self.db.session() as db:
            user = db.query(User).filter(User.id == uid).first()
            if not user:
                raise user_not_found()

            db.query(OtpCode).filter(
                OtpCode.user_id == uid,
                OtpCode.used.is_(False),
            ).delete(synchronize_session=False)

            now = self.clock()
            record = OtpCode(
                user_id=uid,
                email=email,
                code=self.generate_code(),
                expires_at=now + self.ttl,
                used=False,
            )
            db.add(record)
            if user.pending_email and user.pending_email == email:
                user.verification_sent_at = now
            db.commit()

            username = user.username
            issued = IssuedCode(str(record.id), email, record.code, record.expires_at, True)

        try:
            self.notifier.send_verification_code(email, username, issued.code)
        except Exception:
            if required:
                logger.exception(f"Failed to send verification email to {mask_address(email)}")
                raise internal_failure("Failed to send verification email")
            logger.error(
                f"Failed to send verification email to {mask_address(email)}; "
                "continuing, the user can request a new code",
                exc_info=True,
            )
            return issued._replace(delivered=False)

        return issued

    def verify(self, user_id, submitted_code: str) -> dict:
        uid = as_uuid(user_id, "User")
        code = (submitted_code or "").strip()
        if not code:
            raise invalid_code()

        with self.db.session() as db:
            record = (
                db.query(OtpCode)
                .filter(
                    OtpCode.user_id == uid,
                    OtpCode.code == code,
                    OtpCode.used.is_(False),
                )
                .order_by(OtpCode.created_at.desc())
                .first()
            )
            if not record:
                raise invalid_code()

            # expired codes stay unused; a later issue() sweeps them
            if record.is_expired(self.clock()):
                raise expired()

            user = db.query(User).filter(User.id == uid).first()
            if not user:
                raise user_not_found()
            if record.email not in (user.email, user.pending_email):
                raise invalid_code()

            # conditional so two concurrent verifies cannot both consume the code
            consumed = (
                db.query(OtpCode)
                .filter(OtpCode.id == record.id, OtpCode.used.is_(False))
                .update({OtpCode.used: True}, synchronize_session=False)
            )
            if consumed == 0:
                db.rollback()
                raise invalid_code()

            email_changed = False
            if user.pending_email and record.email == user.pending_email:
                taken = (
                    db.query(User.id)
                    .filter(User.email == user.pending_email, User.id != uid)
                    .first()
                )
                if taken:
                    db.rollback()
                    raise conflict("Email already in use")
                user.email = user.pending_email
                user.pending_email = None
                user.verification_sent_at = None
                email_changed = True

            user.is_email_verified = True

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise conflict("Email already in use")

            logger.info(f"Email verified for user {uid}")
            return {"verified": True, "email": user.email, "emailChanged": email_changed}
