import pytest

from errors import AppError, ErrorKind
from models import OtpCode, User
from services.otp_service import OtpService


def _codes(database, user):
    with database.session() as db:
        return db.query(OtpCode).filter(OtpCode.user_id == user.id).all()


def _reload(database, user):
    with database.session() as db:
        return db.get(User, user.id)


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = OtpService.generate_code()
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_issue_stores_code_and_notifies(ctx, make_user, notifier, clock):
    alice = make_user("alice", verified=False)

    issued = ctx.otp.issue(alice.id, "alice@example.com")

    assert issued.delivered
    assert notifier.sent == [{"to": "alice@example.com", "username": "alice", "code": issued.code}]
    (record,) = _codes(ctx.database, alice)
    assert record.code == issued.code
    assert record.used is False
    assert record.expires_at == clock.now + ctx.otp.ttl


def test_scenario_register_verify_with_known_code(ctx, make_user, monkeypatch):
    alice = make_user("alice", verified=False)
    monkeypatch.setattr(ctx.otp, "generate_code", lambda: "482193")
    ctx.otp.issue(alice.id, "alice@example.com")

    result = ctx.otp.verify(alice.id, " 482193 ")

    assert result == {"verified": True, "email": "alice@example.com", "emailChanged": False}
    assert _reload(ctx.database, alice).is_email_verified is True
    (record,) = _codes(ctx.database, alice)
    assert record.used is True

    with pytest.raises(AppError) as e:
        ctx.otp.verify(alice.id, "482193")
    assert e.value.kind is ErrorKind.INVALID_CODE


def test_resend_invalidates_previous_code(ctx, make_user, monkeypatch):
    alice = make_user("alice", verified=False)
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(ctx.otp, "generate_code", lambda: next(codes))

    first = ctx.otp.issue(alice.id, "alice@example.com").code
    second = ctx.otp.issue(alice.id, "alice@example.com").code
    assert (first, second) == ("111111", "222222")

    with pytest.raises(AppError) as e:
        ctx.otp.verify(alice.id, first)
    assert e.value.kind is ErrorKind.INVALID_CODE

    assert ctx.otp.verify(alice.id, second)["verified"] is True
    assert len(_codes(ctx.database, alice)) == 1


def test_code_is_single_use(ctx, make_user):
    alice = make_user("alice", verified=False)
    code = ctx.otp.issue(alice.id, "alice@example.com").code
    ctx.otp.verify(alice.id, code)

    with pytest.raises(AppError) as e:
        ctx.otp.verify(alice.id, code)
    assert e.value.kind is ErrorKind.INVALID_CODE


def test_expired_code_is_left_untouched(ctx, make_user, clock):
    alice = make_user("alice", verified=False)
    code = ctx.otp.issue(alice.id, "alice@example.com").code

    clock.advance(minutes=10, seconds=1)
    with pytest.raises(AppError) as e:
        ctx.otp.verify(alice.id, code)

    assert e.value.kind is ErrorKind.EXPIRED
    assert e.value.status == 400
    (record,) = _codes(ctx.database, alice)
    assert record.used is False
    assert _reload(ctx.database, alice).is_email_verified is False


def test_code_still_valid_right_at_ttl(ctx, make_user, clock):
    alice = make_user("alice", verified=False)
    code = ctx.otp.issue(alice.id, "alice@example.com").code

    clock.advance(minutes=10)
    assert ctx.otp.verify(alice.id, code)["verified"] is True


def test_wrong_or_empty_code_is_invalid(ctx, make_user):
    alice = make_user("alice", verified=False)
    ctx.otp.issue(alice.id, "alice@example.com")

    for bad in ("000000x", "", "   "):
        with pytest.raises(AppError) as e:
            ctx.otp.verify(alice.id, bad)
        assert e.value.kind is ErrorKind.INVALID_CODE


def test_code_for_pending_email_promotes_it(ctx, make_user, database, clock):
    alice = make_user("alice")
    with database.session() as db:
        user = db.get(User, alice.id)
        user.pending_email = "alice.new@example.com"
        db.commit()

    issued = ctx.otp.issue(alice.id, "alice.new@example.com")
    assert _reload(database, alice).verification_sent_at == clock.now

    result = ctx.otp.verify(alice.id, issued.code)

    assert result["emailChanged"] is True
    assert result["email"] == "alice.new@example.com"
    user = _reload(database, alice)
    assert user.email == "alice.new@example.com"
    assert user.pending_email is None
    assert user.verification_sent_at is None


def test_promotion_conflict_rolls_back_everything(ctx, make_user, database):
    alice = make_user("alice")
    with database.session() as db:
        user = db.get(User, alice.id)
        user.pending_email = "shared@example.com"
        db.commit()
    issued = ctx.otp.issue(alice.id, "shared@example.com")

    # someone else claims the address before alice verifies
    make_user("bob", email="shared@example.com")

    with pytest.raises(AppError) as e:
        ctx.otp.verify(alice.id, issued.code)

    assert e.value.kind is ErrorKind.CONFLICT
    user = _reload(database, alice)
    assert user.email == "alice@example.com"
    assert user.pending_email == "shared@example.com"
    (record,) = _codes(database, alice)
    assert record.used is False


def test_delivery_failure_when_required(ctx, make_user, notifier):
    alice = make_user("alice", verified=False)
    notifier.fail = True

    with pytest.raises(AppError) as e:
        ctx.otp.issue(alice.id, "alice@example.com", required=True)

    assert e.value.kind is ErrorKind.INTERNAL_FAILURE
    # the code row is kept even though the email never went out
    assert len(_codes(ctx.database, alice)) == 1


def test_delivery_failure_tolerated_when_optional(ctx, make_user, notifier):
    alice = make_user("alice", verified=False)
    notifier.fail = True

    issued = ctx.otp.issue(alice.id, "alice@example.com", required=False)

    assert issued.delivered is False
    assert len(_codes(ctx.database, alice)) == 1


def test_issue_for_unknown_user(ctx):
    with pytest.raises(AppError) as e:
        ctx.otp.issue("3f0d2c1e-0000-4000-8000-000000000001", "ghost@example.com")
    assert e.value.kind is ErrorKind.USER_NOT_FOUND
