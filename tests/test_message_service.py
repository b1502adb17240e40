import pytest

from errors import AppError, ErrorKind
from models import MemberRole
from schemas.base import parse_body
from schemas.items import CreateItemIn
from schemas.messages import CreateMessageIn
from services.message_service import page_size, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


@pytest.fixture
def chat(make_user, make_list):
    alice, bob = make_user("alice"), make_user("bob")
    lst = make_list(alice, members=[(bob, MemberRole.VIEWER)])
    return alice, bob, lst


def _post(ctx, clock, user, lst, text, **extra):
    clock.advance(seconds=1)
    return ctx.messages.post_message(user.id, lst.id, parse_body(CreateMessageIn, {"text": text, **extra}))


def test_page_size():
    assert page_size(None) == DEFAULT_PAGE_SIZE
    assert page_size("") == DEFAULT_PAGE_SIZE
    assert page_size("10") == 10
    assert page_size("1000") == MAX_PAGE_SIZE
    assert page_size("0") == 1
    with pytest.raises(AppError):
        page_size("lots")


def test_viewer_can_post_and_mentions_are_kept(ctx, chat, clock):
    alice, bob, lst = chat
    message = _post(ctx, clock, bob, lst, "  @alice milk?  ", mentionsUsers=[str(alice.id)])

    assert message["text"] == "@alice milk?"
    assert message["mentionsUsers"] == [str(alice.id)]
    assert message["sender"]["username"] == "bob"


def test_outsiders_cannot_read_or_post(ctx, chat, make_user):
    _, _, lst = chat
    mallory = make_user("mallory")

    with pytest.raises(AppError) as e:
        ctx.messages.list_messages(mallory.id, lst.id)
    assert e.value.kind is ErrorKind.FORBIDDEN

    with pytest.raises(AppError) as e:
        ctx.messages.post_message(mallory.id, lst.id, CreateMessageIn(text="hi"))
    assert e.value.kind is ErrorKind.FORBIDDEN


@pytest.mark.parametrize("text", ["", "   ", "x" * 2001])
def test_message_length(text):
    with pytest.raises(AppError) as e:
        parse_body(CreateMessageIn, {"text": text})
    assert "text" in e.value.details


def test_pagination_walks_back_in_time(ctx, chat, clock):
    alice, bob, lst = chat
    for n in range(5):
        _post(ctx, clock, alice if n % 2 else bob, lst, f"m{n}")

    first = ctx.messages.list_messages(alice.id, lst.id, limit="2")
    assert [m["text"] for m in first["messages"]] == ["m3", "m4"]
    assert first["hasMore"] is True

    second = ctx.messages.list_messages(alice.id, lst.id, limit="2", cursor=first["nextCursor"])
    assert [m["text"] for m in second["messages"]] == ["m1", "m2"]
    assert second["hasMore"] is True

    third = ctx.messages.list_messages(alice.id, lst.id, limit="2", cursor=second["nextCursor"])
    assert [m["text"] for m in third["messages"]] == ["m0"]
    assert third["hasMore"] is False
    assert third["nextCursor"] is None


def test_exact_page_has_no_more(ctx, chat, clock):
    alice, _, lst = chat
    for n in range(2):
        _post(ctx, clock, alice, lst, f"m{n}")

    page = ctx.messages.list_messages(alice.id, lst.id, limit=2)
    assert page["hasMore"] is False


def test_unknown_cursor(ctx, chat):
    alice, _, lst = chat
    with pytest.raises(AppError) as e:
        ctx.messages.list_messages(alice.id, lst.id, cursor="not-a-message")
    assert e.value.kind is ErrorKind.VALIDATION_FAILED


def test_mentions_search(ctx, chat):
    alice, bob, lst = chat
    for name in ("Bread", "Brown sugar", "Milk"):
        ctx.items.create_item(alice.id, lst.id, parse_body(CreateItemIn, {"name": name}))

    result = ctx.messages.mentions(bob.id, lst.id, "BR")

    assert sorted(i["name"] for i in result["items"]) == ["Bread", "Brown sugar"]
    assert result["members"] == []
    assert all(i["type"] == "item" for i in result["items"])

    result = ctx.messages.mentions(bob.id, lst.id, "ali")
    assert [m["username"] for m in result["members"]] == ["alice"]
    assert result["members"][0]["type"] == "user"


def test_mentions_are_capped(ctx, chat):
    alice, _, lst = chat
    for n in range(7):
        ctx.items.create_item(alice.id, lst.id, parse_body(CreateItemIn, {"name": f"apple {n}"}))

    assert len(ctx.messages.mentions(alice.id, lst.id, "apple")["items"]) == 5
