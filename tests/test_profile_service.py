import pytest

from errors import AppError, ErrorKind
from models import User, ShoppingList, ListMember, MemberRole
from schemas.auth import ProfilePatch, ChangePasswordIn
from schemas.base import parse_body
from auth.utils import verify_password


def _patch(body):
    return parse_body(ProfilePatch, body)


def test_update_username_and_avatar(ctx, make_user):
    alice = make_user("alice")

    result = ctx.profile.update_profile(alice.id, _patch({"username": "alice_b", "avatarUrl": "https://cdn/a.png"}))

    assert result["user"]["username"] == "alice_b"
    assert result["user"]["avatarUrl"] == "https://cdn/a.png"
    assert result["verificationSent"] is False


def test_explicit_null_clears_avatar(ctx, make_user):
    alice = make_user("alice")
    ctx.profile.update_profile(alice.id, _patch({"avatarUrl": "https://cdn/a.png"}))

    result = ctx.profile.update_profile(alice.id, _patch({"avatarUrl": None}))
    assert result["user"]["avatarUrl"] is None

    # omitted fields are left alone
    result = ctx.profile.update_profile(alice.id, _patch({"username": "alice2"}))
    assert result["user"]["avatarUrl"] is None


def test_empty_patch_is_rejected():
    with pytest.raises(AppError) as e:
        _patch({})
    assert e.value.kind is ErrorKind.VALIDATION_FAILED


def test_username_taken(ctx, make_user):
    alice = make_user("alice")
    make_user("bob")

    with pytest.raises(AppError) as e:
        ctx.profile.update_profile(alice.id, _patch({"username": "bob"}))
    assert e.value.kind is ErrorKind.CONFLICT


def test_email_change_goes_through_pending(ctx, make_user, notifier):
    alice = make_user("alice")

    result = ctx.profile.update_profile(alice.id, _patch({"email": "Alice.New@example.com"}))

    assert result["verificationSent"] is True
    assert result["user"]["email"] == "alice@example.com"
    assert result["user"]["pendingEmail"] == "alice.new@example.com"
    assert notifier.sent[-1]["to"] == "alice.new@example.com"

    verified = ctx.auth.verify_otp(alice.id, notifier.last_code)
    assert verified["emailChanged"] is True
    assert ctx.auth.get_current_user(alice.id)["email"] == "alice.new@example.com"


def test_email_already_in_use(ctx, make_user):
    alice = make_user("alice")
    make_user("bob")

    with pytest.raises(AppError) as e:
        ctx.profile.update_profile(alice.id, _patch({"email": "bob@example.com"}))
    assert e.value.kind is ErrorKind.CONFLICT


def test_change_password(ctx, make_user, database):
    alice = make_user("alice")

    with pytest.raises(AppError) as e:
        ctx.profile.change_password(
            alice.id,
            parse_body(ChangePasswordIn, {"currentPassword": "wrongpass1", "newPassword": "newsecret1"}),
        )
    assert e.value.kind is ErrorKind.INVALID_CREDENTIALS

    ctx.profile.change_password(
        alice.id,
        parse_body(ChangePasswordIn, {"currentPassword": "secret123", "newPassword": "newsecret1"}),
    )
    with database.session() as db:
        assert verify_password("newsecret1", db.get(User, alice.id).password_hash)


def test_delete_account_cascades(ctx, make_user, make_list, database):
    alice = make_user("alice")
    bob = make_user("bob")
    own = make_list(alice, name="Alice's")
    shared = make_list(bob, name="Bob's", members=[(alice, MemberRole.EDITOR)])

    with pytest.raises(AppError) as e:
        ctx.profile.delete_account(alice.id, "wrongpass1")
    assert e.value.kind is ErrorKind.INVALID_CREDENTIALS

    ctx.profile.delete_account(alice.id, "secret123")

    with database.session() as db:
        assert db.get(User, alice.id) is None
        assert db.get(ShoppingList, own.id) is None
        assert db.get(ShoppingList, shared.id) is not None
        assert db.query(ListMember).filter(ListMember.user_id == alice.id).count() == 0


def test_reverting_to_current_email_drops_pending_change(ctx, make_user, database, notifier):
    alice = make_user("alice")
    ctx.profile.update_profile(alice.id, _patch({"email": "alice.new@example.com"}))
    sent = len(notifier.sent)

    result = ctx.profile.update_profile(alice.id, _patch({"email": "Alice@example.com"}))

    assert result["verificationSent"] is False
    assert result["user"]["email"] == "alice@example.com"
    assert result["user"]["pendingEmail"] is None
    assert len(notifier.sent) == sent
    with database.session() as db:
        assert db.get(User, alice.id).verification_sent_at is None
