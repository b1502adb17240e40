from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool

from config import Settings
from context import build_context
from db import Database
from models import User, ShoppingList, ListMember, MemberRole
from auth.utils import hash_password

PASSWORD = "secret123"


class FakeNotifier:
    """Records every verification email instead of sending it."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_verification_code(self, to, username, code):
        if self.fail:
            raise RuntimeError("SMTP unavailable")
        self.sent.append({"to": to, "username": username, "code": code})

    @property
    def last_code(self):
        return self.sent[-1]["code"] if self.sent else None


class Clock:
    def __init__(self, now=None):
        self.now = now or datetime(2025, 1, 15, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def database():
    db = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", jwt_secret="test-secret", jwt_expiry="24h")


@pytest.fixture
def ctx(settings, database, notifier, clock):
    return build_context(settings, database=database, notifier=notifier, clock=clock)


@pytest.fixture
def make_user(database):
    counter = {"n": 0}

    def _make(username=None, email=None, password=PASSWORD, verified=True):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        with database.session() as db:
            user = User(
                username=username,
                email=email or f"{username}@example.com",
                password_hash=hash_password(password),
                is_email_verified=verified,
            )
            db.add(user)
            db.commit()
            return user

    return _make


@pytest.fixture
def make_list(database):
    def _make(creator, name="Groceries", members=(), member_cap=None):
        """`members` is a sequence of (user, MemberRole) pairs."""
        with database.session() as db:
            lst = ShoppingList(name=name, creator_id=creator.id, member_cap=member_cap)
            lst.members.append(ListMember(user_id=creator.id, role=MemberRole.CREATOR))
            for user, role in members:
                lst.members.append(ListMember(user_id=user.id, role=role))
            db.add(lst)
            db.commit()
            return lst

    return _make


@pytest.fixture
def member_id(database):
    def _lookup(lst, user):
        with database.session() as db:
            return (
                db.query(ListMember.id)
                .filter(ListMember.list_id == lst.id, ListMember.user_id == user.id)
                .scalar()
            )

    return _lookup
