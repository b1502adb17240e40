"""JSON-ready views of the ORM rows. Keys follow the web client's camelCase."""
from datetime import datetime
from typing import Optional

from models import User, ListMember, ShoppingList, Invite, Item, Message


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _enum(value):
    return value.value if value is not None else None


def user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {
        "id":        str(user.id),
        "username":  user.username,
        "avatarUrl": user.avatar_url,
    }


def user_profile(user: User) -> dict:
    return {
        "id":              str(user.id),
        "username":        user.username,
        "email":           user.email,
        "avatarUrl":       user.avatar_url,
        "isEmailVerified": bool(user.is_email_verified),
        "pendingEmail":    user.pending_email,
        "createdAt":       _iso(user.created_at),
        "updatedAt":       _iso(user.updated_at),
    }


def member_view(member: ListMember, with_user: bool = True) -> dict:
    data = {
        "id":       str(member.id),
        "listId":   str(member.list_id),
        "userId":   str(member.user_id),
        "role":     member.role.value,
        "joinedAt": _iso(member.joined_at),
    }
    if with_user:
        data["user"] = user_summary(member.user)
    return data


def list_summary(lst: ShoppingList) -> dict:
    return {
        "id":        str(lst.id),
        "name":      lst.name,
        "creatorId": str(lst.creator_id),
        "memberCap": lst.member_cap,
        "createdAt": _iso(lst.created_at),
        "updatedAt": _iso(lst.updated_at),
    }


def invite_view(invite: Invite) -> dict:
    return {
        "id":          str(invite.id),
        "listId":      str(invite.list_id),
        "createdById": str(invite.created_by_id),
        "token":       invite.token,
        "expiresAt":   _iso(invite.expires_at),
        "maxUses":     invite.max_uses,
        "usedCount":   invite.used_count,
        "isActive":    bool(invite.is_active),
        "createdAt":   _iso(invite.created_at),
    }


def item_view(item: Item) -> dict:
    return {
        "id":            str(item.id),
        "listId":        str(item.list_id),
        "name":          item.name,
        "quantity":      item.quantity,
        "unit":          _enum(item.unit),
        "customUnit":    item.custom_unit,
        "status":        _enum(item.status),
        "priority":      _enum(item.priority),
        "category":      _enum(item.category),
        "tags":          list(item.tags or []),
        "notes":         item.notes,
        "priceCents":    item.price_cents,
        "currency":      item.currency,
        "done":          bool(item.done),
        "createdById":   str(item.created_by_id),
        "assignedToId":  str(item.assigned_to_id) if item.assigned_to_id else None,
        "purchasedById": str(item.purchased_by_id) if item.purchased_by_id else None,
        "purchasedAt":   _iso(item.purchased_at),
        "createdAt":     _iso(item.created_at),
        "updatedAt":     _iso(item.updated_at),
    }


def message_view(message: Message) -> dict:
    return {
        "id":            str(message.id),
        "listId":        str(message.list_id),
        "text":          message.text,
        "mentionsUsers": list(message.mentions_users or []),
        "mentionsItems": list(message.mentions_items or []),
        "sender":        user_summary(message.sender),
        "createdAt":     _iso(message.created_at),
    }
