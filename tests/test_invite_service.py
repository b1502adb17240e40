import uuid
from datetime import timedelta

import pytest

from errors import AppError, ErrorKind
from models import Invite, ListMember, MemberRole


def _invite(database, invite_id):
    with database.session() as db:
        return db.get(Invite, uuid.UUID(invite_id))


def _role(database, lst, user):
    with database.session() as db:
        return (
            db.query(ListMember.role)
            .filter(ListMember.list_id == lst.id, ListMember.user_id == user.id)
            .scalar()
        )


@pytest.fixture
def setup(make_user, make_list):
    carol = make_user("carol")
    dave = make_user("dave")
    erin = make_user("erin")
    lst = make_list(carol, name="Weekend BBQ")
    return carol, dave, erin, lst


def test_capacity_scenario(ctx, setup):
    carol, dave, erin, lst = setup
    created = ctx.invites.create(lst.id, carol.id, expires_in_hours=1, max_uses=1)
    token = created["invite"]["token"]
    assert created["inviteUrl"] == f"/invite/{token}"

    details = ctx.invites.get_details(token, dave.id)
    assert details["list"] == {"id": str(lst.id), "name": "Weekend BBQ", "memberCount": 1}
    assert details["usedCount"] == 0

    joined = ctx.invites.accept(token, dave.id)
    assert joined["member"]["role"] == "EDITOR"
    assert _role(ctx.database, lst, dave) is MemberRole.EDITOR
    assert _invite(ctx.database, created["invite"]["id"]).used_count == 1

    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, erin.id)
    assert e.value.kind is ErrorKind.GONE
    assert e.value.status == 410
    assert _role(ctx.database, lst, erin) is None


def test_preview_is_read_only(ctx, setup):
    carol, dave, _, lst = setup
    created = ctx.invites.create(lst.id, carol.id, max_uses=1)
    token = created["invite"]["token"]

    for _ in range(3):
        ctx.invites.get_details(token, dave.id)

    assert _invite(ctx.database, created["invite"]["id"]).used_count == 0
    assert _role(ctx.database, lst, dave) is None


def test_token_and_defaults(ctx, setup, clock):
    carol, _, _, lst = setup
    invite = ctx.invites.create(lst.id, carol.id)["invite"]

    assert len(invite["token"]) >= 43
    assert invite["maxUses"] is None
    assert invite["isActive"] is True
    assert invite["expiresAt"] == (clock.now + timedelta(hours=24)).isoformat()


@pytest.mark.parametrize("kwargs,field", [
    ({"expires_in_hours": 0}, "expiresInHours"),
    ({"expires_in_hours": 169}, "expiresInHours"),
    ({"max_uses": 0}, "maxUses"),
    ({"max_uses": 101}, "maxUses"),
])
def test_create_bounds(ctx, setup, kwargs, field):
    carol, _, _, lst = setup
    with pytest.raises(AppError) as e:
        ctx.invites.create(lst.id, carol.id, **kwargs)
    assert e.value.kind is ErrorKind.VALIDATION_FAILED
    assert field in e.value.details


def test_only_creator_manages_invites(ctx, setup, make_user, make_list):
    carol, dave, _, _ = setup
    lst = make_list(carol, name="Shared", members=[(dave, MemberRole.EDITOR)])

    with pytest.raises(AppError) as e:
        ctx.invites.create(lst.id, dave.id)
    assert e.value.kind is ErrorKind.FORBIDDEN

    with pytest.raises(AppError) as e:
        ctx.invites.list_active(lst.id, dave.id)
    assert e.value.kind is ErrorKind.FORBIDDEN


def test_deactivated_invite_is_gone(ctx, setup):
    carol, dave, _, lst = setup
    created = ctx.invites.create(lst.id, carol.id)
    token = created["invite"]["token"]

    updated = ctx.invites.deactivate(created["invite"]["id"], lst.id, carol.id)
    assert updated["isActive"] is False

    for call in (ctx.invites.get_details, ctx.invites.accept):
        with pytest.raises(AppError) as e:
            call(token, dave.id)
        assert e.value.kind is ErrorKind.GONE

    # deactivated but unexpired invites are still listed for the creator
    assert [i["id"] for i in ctx.invites.list_active(lst.id, carol.id)] == [created["invite"]["id"]]

    ctx.invites.set_active(created["invite"]["id"], lst.id, carol.id, True)
    assert ctx.invites.accept(token, dave.id)["member"]["role"] == "EDITOR"


def test_expired_invite_is_gone(ctx, setup, clock):
    carol, dave, _, lst = setup
    token = ctx.invites.create(lst.id, carol.id, expires_in_hours=1)["invite"]["token"]

    clock.advance(hours=1)
    with pytest.raises(AppError) as e:
        ctx.invites.get_details(token, dave.id)
    assert e.value.kind is ErrorKind.GONE
    assert ctx.invites.list_active(lst.id, carol.id) == []


def test_unknown_token_is_not_found(ctx, setup):
    _, dave, _, _ = setup
    with pytest.raises(AppError) as e:
        ctx.invites.get_details("no-such-token", dave.id)
    assert e.value.kind is ErrorKind.RESOURCE_NOT_FOUND


def test_existing_member_conflicts(ctx, setup):
    carol, dave, _, lst = setup
    token = ctx.invites.create(lst.id, carol.id)["invite"]["token"]

    with pytest.raises(AppError) as e:
        ctx.invites.get_details(token, carol.id)
    assert e.value.kind is ErrorKind.CONFLICT

    ctx.invites.accept(token, dave.id)
    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, dave.id)
    assert e.value.kind is ErrorKind.CONFLICT


def test_stale_preview_is_rechecked_on_accept(ctx, setup):
    carol, dave, _, lst = setup
    created = ctx.invites.create(lst.id, carol.id)
    token = created["invite"]["token"]

    ctx.invites.get_details(token, dave.id)
    ctx.invites.deactivate(created["invite"]["id"], lst.id, carol.id)

    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, dave.id)
    assert e.value.kind is ErrorKind.GONE


def test_capacity_is_enforced_at_commit(ctx, setup, monkeypatch):
    carol, dave, _, lst = setup
    created = ctx.invites.create(lst.id, carol.id, max_uses=1)
    token = created["invite"]["token"]
    check = ctx.invites._check_eligibility

    def check_then_lose_race(db, token, user_id):
        invite = check(db, token, user_id)
        # a concurrent accept takes the last slot after the eligibility checks
        db.query(Invite).filter(Invite.id == invite.id).update(
            {Invite.used_count: 1}, synchronize_session=False
        )
        return invite

    monkeypatch.setattr(ctx.invites, "_check_eligibility", check_then_lose_race)

    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, dave.id)

    assert e.value.kind is ErrorKind.GONE
    assert _role(ctx.database, lst, dave) is None
    assert _invite(ctx.database, created["invite"]["id"]).used_count == 0


def test_cross_list_invite_management(ctx, setup, make_list):
    carol, _, _, lst = setup
    other = make_list(carol, name="Other")
    invite_id = ctx.invites.create(lst.id, carol.id)["invite"]["id"]

    with pytest.raises(AppError) as e:
        ctx.invites.delete(invite_id, other.id, carol.id)
    assert e.value.kind is ErrorKind.FORBIDDEN

    with pytest.raises(AppError) as e:
        ctx.invites.delete(str(uuid.uuid4()), lst.id, carol.id)
    assert e.value.kind is ErrorKind.RESOURCE_NOT_FOUND

    ctx.invites.delete(invite_id, lst.id, carol.id)
    assert _invite(ctx.database, invite_id) is None


def test_full_list_is_gone(ctx, make_user, make_list):
    carol, dave, erin = make_user("carol"), make_user("dave"), make_user("erin")
    lst = make_list(carol, name="Small dinner", member_cap=2)
    token = ctx.invites.create(lst.id, carol.id, max_uses=10)["invite"]["token"]

    ctx.invites.accept(token, dave.id)

    for attempt in (ctx.invites.get_details, ctx.invites.accept):
        with pytest.raises(AppError) as e:
            attempt(token, erin.id)
        assert e.value.kind is ErrorKind.GONE
        assert "maximum number of members" in e.value.message

    # membership is reported before the cap
    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, dave.id)
    assert e.value.kind is ErrorKind.CONFLICT
    assert _role(ctx.database, lst, erin) is None


def test_member_cap_is_enforced_at_commit(ctx, make_user, make_list, monkeypatch):
    carol, dave, erin = make_user("carol"), make_user("dave"), make_user("erin")
    lst = make_list(carol, member_cap=2)
    created = ctx.invites.create(lst.id, carol.id)
    token = created["invite"]["token"]
    check = ctx.invites._check_eligibility

    def check_then_lose_race(db, token, user_id):
        invite = check(db, token, user_id)
        # another join lands after the eligibility checks
        db.add(ListMember(list_id=lst.id, user_id=erin.id, role=MemberRole.EDITOR))
        return invite

    monkeypatch.setattr(ctx.invites, "_check_eligibility", check_then_lose_race)

    with pytest.raises(AppError) as e:
        ctx.invites.accept(token, dave.id)

    assert e.value.kind is ErrorKind.GONE
    assert _role(ctx.database, lst, dave) is None
    assert _invite(ctx.database, created["invite"]["id"]).used_count == 0


def test_uncapped_list_accepts_members(ctx, setup):
    carol, dave, erin, lst = setup
    token = ctx.invites.create(lst.id, carol.id)["invite"]["token"]

    ctx.invites.accept(token, dave.id)
    joined = ctx.invites.accept(token, erin.id)

    assert joined["list"]["memberCap"] is None
    assert _role(ctx.database, lst, erin) is MemberRole.EDITOR
