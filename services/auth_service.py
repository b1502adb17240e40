import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from auth.token import TokenService
from auth.utils import hash_password, verify_password
from db import Database
from errors import conflict, invalid_credentials, user_not_found, validation_failed
from models import User
from schemas.auth import RegisterIn, LoginIn
from services.otp_service import OtpService
from utils.ids import as_uuid
from utils.serializers import user_profile

logger = logging.getLogger(__name__)


def token_claims(user: User) -> dict:
    return {"id": str(user.id), "email": user.email, "username": user.username}


class AuthService:
    """Account entry points: registration, login and email verification."""

    def __init__(self, database: Database, tokens: TokenService, otp: OtpService):
        self.db = database
        self.tokens = tokens
        self.otp = otp

    def register(self, data: RegisterIn) -> dict:
        with self.db.session() as db:
            existing = (
                db.query(User)
                .filter(or_(User.email == data.email, User.username == data.username))
                .first()
            )
            if existing:
                if existing.email == data.email:
                    raise conflict("Email already registered")
                raise conflict("Username already taken")

            user = User(
                username=data.username,
                email=data.email,
                password_hash=hash_password(data.password),
                is_email_verified=False,
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                # lost a race with a concurrent registration
                db.rollback()
                raise conflict("Email or username already registered")

        # account stands even if the email cannot be delivered; the user can resend
        issued = self.otp.issue(user.id, user.email, required=False)

        logger.info(f"Registered user {user.id}")
        return {
            "token": self.tokens.sign(token_claims(user)),
            "user": user_profile(user),
            "otpIssued": issued.delivered,
        }

    def login(self, data: LoginIn) -> dict:
        with self.db.session() as db:
            user = db.query(User).filter(User.email == data.email).first()

        # same answer for unknown email and wrong password
        if not user or not verify_password(data.password, user.password_hash):
            raise invalid_credentials()

        return {
            "token": self.tokens.sign(token_claims(user)),
            "user": user_profile(user),
        }

    def get_current_user(self, user_id) -> dict:
        with self.db.session() as db:
            user = db.query(User).filter(User.id == as_uuid(user_id, "User")).first()
            if not user:
                raise user_not_found()
            return user_profile(user)

    def send_otp(self, user_id, email: str) -> dict:
        """Explicit (re)send. Delivery failure is reported to the caller."""
        email = (email or "").strip().lower()
        with self.db.session() as db:
            user = db.query(User).filter(User.id == as_uuid(user_id, "User")).first()
            if not user:
                raise user_not_found()
            if email not in (user.email, user.pending_email):
                raise validation_failed(
                    "Email does not match user account",
                    {"email": ["Email does not match user account"]},
                )

        self.otp.issue(user.id, email, required=True)
        return {"message": "Verification code sent to your email", "email": email}

    def verify_otp(self, user_id, code: str) -> dict:
        return self.otp.verify(user_id, code)

    def refresh_token(self, user_id) -> str:
        """New token for a user whose email or username changed since sign-in."""
        with self.db.session() as db:
            user = db.query(User).filter(User.id == as_uuid(user_id, "User")).first()
            if not user:
                raise user_not_found()
            return self.tokens.sign(token_claims(user))
