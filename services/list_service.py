# services/list_service.py
from __future__ import annotations
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from auth.deps import AccessControl, CREATOR_ONLY
from db import Database
from errors import not_found, forbidden, validation_failed
from models import ShoppingList, ListMember, MemberRole, Item, Message
from services.item_service import sort_items
from utils.ids import as_uuid
from utils.serializers import list_summary, member_view, item_view, message_view, user_summary

logger = logging.getLogger(__name__)

RECENT_MESSAGES = 50


class ListService:
    def __init__(self, database: Database, access: AccessControl):
        self.db = database
        self.access = access

    # ───────────── LISTS ───────────────────────────────────────────────────────
    def list_for_user(self, user_id) -> List[dict]:
        """Every list the user belongs to, created or joined, most recently touched first."""
        uid = as_uuid(user_id, "User")
        with self.db.session() as db:
            lists = (
                db.query(ShoppingList)
                .join(ListMember, ListMember.list_id == ShoppingList.id)
                .filter(ListMember.user_id == uid)
                .options(
                    joinedload(ShoppingList.creator),
                    joinedload(ShoppingList.members).joinedload(ListMember.user),
                )
                .order_by(ShoppingList.updated_at.desc())
                .all()
            )
            counts = {}
            if lists:
                ids = [l.id for l in lists]
                item_counts = dict(
                    db.query(Item.list_id, func.count(Item.id))
                    .filter(Item.list_id.in_(ids)).group_by(Item.list_id).all()
                )
                message_counts = dict(
                    db.query(Message.list_id, func.count(Message.id))
                    .filter(Message.list_id.in_(ids)).group_by(Message.list_id).all()
                )
                counts = {i: (item_counts.get(i, 0), message_counts.get(i, 0)) for i in ids}

            result = []
            for lst in lists:
                item_count, message_count = counts.get(lst.id, (0, 0))
                result.append({
                    **list_summary(lst),
                    "creator":      user_summary(lst.creator),
                    "memberCount":  len(lst.members),
                    "itemCount":    item_count,
                    "messageCount": message_count,
                    "members":      [member_view(m) for m in lst.members],
                })
            return result

    def create_list(self, user_id, name: str) -> dict:
        uid = as_uuid(user_id, "User")
        with self.db.session() as db:
            lst = ShoppingList(name=name, creator_id=uid)
            # creator membership lands in the same transaction as the list
            lst.members.append(ListMember(user_id=uid, role=MemberRole.CREATOR))
            db.add(lst)
            db.commit()
            logger.info(f"List {lst.id} created by {uid}")
            return {
                **list_summary(lst),
                "creator": user_summary(lst.creator),
                "members": [member_view(m) for m in lst.members],
            }

    def get_list(self, user_id, list_id) -> dict:
        self.access.assert_list_role(user_id, list_id)
        lid = as_uuid(list_id, "List")
        with self.db.session() as db:
            lst = (
                db.query(ShoppingList)
                .options(
                    joinedload(ShoppingList.creator),
                    joinedload(ShoppingList.members).joinedload(ListMember.user),
                )
                .filter(ShoppingList.id == lid)
                .first()
            )
            if not lst:
                raise not_found("List not found")

            items = db.query(Item).filter(Item.list_id == lid).all()
            messages = (
                db.query(Message)
                .options(joinedload(Message.sender))
                .filter(Message.list_id == lid)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(RECENT_MESSAGES)
                .all()
            )
            return {
                **list_summary(lst),
                "creator":  user_summary(lst.creator),
                "members":  [member_view(m) for m in lst.members],
                "items":    [item_view(i) for i in sort_items(items)],
                "messages": [message_view(m) for m in messages],
            }

    def rename_list(self, user_id, list_id, name: str) -> dict:
        self.access.assert_list_role(user_id, list_id, CREATOR_ONLY)
        with self.db.session() as db:
            lst = db.query(ShoppingList).filter(ShoppingList.id == as_uuid(list_id, "List")).first()
            if not lst:
                raise not_found("List not found")
            lst.name = name
            db.commit()
            return {**list_summary(lst), "creator": user_summary(lst.creator)}

    def delete_list(self, user_id, list_id) -> None:
        self.access.assert_list_role(user_id, list_id, CREATOR_ONLY)
        with self.db.session() as db:
            lst = db.query(ShoppingList).filter(ShoppingList.id == as_uuid(list_id, "List")).first()
            if not lst:
                raise not_found("List not found")
            db.delete(lst)  # items, messages, members and invites cascade
            db.commit()
        logger.info(f"List {list_id} deleted by {user_id}")

    # ───────────── MEMBERS ─────────────────────────────────────────────────────
    def list_members(self, user_id, list_id) -> List[dict]:
        self.access.assert_list_role(user_id, list_id)
        with self.db.session() as db:
            members = (
                db.query(ListMember)
                .options(joinedload(ListMember.user))
                .filter(ListMember.list_id == as_uuid(list_id, "List"))
                .order_by(ListMember.joined_at.asc())
                .all()
            )
            return [member_view(m) for m in members]

    def remove_member(self, user_id, list_id, member_id) -> dict:
        """Creator-only. The creator's own membership can never be removed here."""
        self.access.assert_list_role(user_id, list_id, CREATOR_ONLY)
        with self.db.session() as db:
            member = (
                db.query(ListMember)
                .options(joinedload(ListMember.user))
                .filter(ListMember.id == as_uuid(member_id, "Member"))
                .first()
            )
            if not member:
                raise not_found("Member not found")
            if member.list_id != as_uuid(list_id, "List"):
                raise forbidden("Member does not belong to this list")
            if member.is_creator:
                raise validation_failed("Cannot remove the list creator")

            username = member.user.username if member.user else None
            db.delete(member)
            db.commit()
        logger.info(f"Member {member_id} removed from list {list_id}")
        return {"message": f"{username} removed from list successfully"}
