import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import joinedload

from auth.deps import AccessControl
from db import Database
from errors import AppError, validation_failed
from models import Message, ListMember, User, Item
from schemas.messages import CreateMessageIn
from utils.clock import utcnow
from utils.ids import as_uuid
from utils.serializers import message_view

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
MENTION_LIMIT = 5


def page_size(raw) -> int:
    if raw in (None, ""):
        return DEFAULT_PAGE_SIZE
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise validation_failed("limit must be an integer", {"limit": ["limit must be an integer"]})
    return max(1, min(limit, MAX_PAGE_SIZE))


class MessageService:
    """List chat. Pages walk backwards in time from an optional cursor message."""

    def __init__(self, database: Database, access: AccessControl, clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.access = access
        self.clock = clock

    def list_messages(self, user_id, list_id, limit=None, cursor: Optional[str] = None) -> dict:
        self.access.assert_list_role(user_id, list_id)
        lid = as_uuid(list_id, "List")
        take = page_size(limit)

        with self.db.session() as db:
            q = (
                db.query(Message)
                .options(joinedload(Message.sender))
                .filter(Message.list_id == lid)
            )

            if cursor:
                try:
                    anchor = db.query(Message).filter(
                        Message.id == as_uuid(cursor, "Message"), Message.list_id == lid
                    ).first()
                except AppError:
                    anchor = None
                if not anchor:
                    raise validation_failed("Invalid cursor", {"cursor": ["Invalid cursor"]})
                q = q.filter(or_(
                    Message.created_at < anchor.created_at,
                    and_(Message.created_at == anchor.created_at, Message.id < anchor.id),
                ))

            # one extra row tells us whether an older page exists
            rows = (
                q.order_by(Message.created_at.desc(), Message.id.desc())
                .limit(take + 1)
                .all()
            )
            has_more = len(rows) > take
            rows = rows[:take]

            return {
                "messages":   [message_view(m) for m in reversed(rows)],
                "hasMore":    has_more,
                "nextCursor": str(rows[-1].id) if has_more else None,
            }

    def post_message(self, user_id, list_id, data: CreateMessageIn) -> dict:
        self.access.assert_list_role(user_id, list_id)
        with self.db.session() as db:
            message = Message(
                list_id=as_uuid(list_id, "List"),
                sender_id=as_uuid(user_id, "User"),
                text=data.text,
                mentions_users=list(data.mentions_users),
                mentions_items=list(data.mentions_items),
                created_at=self.clock(),
            )
            db.add(message)
            db.commit()
            view = message_view(message)
        logger.info(f"Message {view['id']} posted to list {list_id}")
        return view

    def mentions(self, user_id, list_id, query: Optional[str] = None) -> dict:
        """Autocomplete candidates for @-mentions: members by username, items by name."""
        self.access.assert_list_role(user_id, list_id)
        lid = as_uuid(list_id, "List")
        needle = (query or "").strip().lower()

        with self.db.session() as db:
            users = (
                db.query(User)
                .join(ListMember, ListMember.user_id == User.id)
                .filter(
                    ListMember.list_id == lid,
                    func.lower(User.username).contains(needle, autoescape=True),
                )
                .order_by(ListMember.joined_at.asc())
                .limit(MENTION_LIMIT)
                .all()
            )
            items = (
                db.query(Item)
                .filter(Item.list_id == lid, func.lower(Item.name).contains(needle, autoescape=True))
                .order_by(Item.updated_at.desc())
                .limit(MENTION_LIMIT)
                .all()
            )
            return {
                "members": [
                    {"id": str(u.id), "username": u.username, "avatarUrl": u.avatar_url, "type": "user"}
                    for u in users
                ],
                "items": [
                    {"id": str(i.id), "name": i.name, "done": bool(i.done), "type": "item"}
                    for i in items
                ],
            }
