import logging
from datetime import datetime
from typing import Callable, Iterable, List

from auth.deps import AccessControl, EDITORS
from db import Database
from errors import AppError, not_found, forbidden, validation_failed
from models import Item, ItemStatus, ItemUnit, ListMember
from models.item import PRIORITY_RANK
from schemas.items import CreateItemIn, ItemPatch
from utils.clock import utcnow
from utils.ids import as_uuid
from utils.serializers import item_view

logger = logging.getLogger(__name__)

STATUS_RANK = {status: i for i, status in enumerate(ItemStatus)}


def sort_items(items: Iterable[Item]) -> List[Item]:
    """Status in declaration order, then urgent first, then newest first."""
    items = sorted(items, key=lambda i: i.created_at or datetime.min, reverse=True)
    return sorted(items, key=lambda i: (STATUS_RANK[i.status], PRIORITY_RANK[i.priority]))


class ItemService:
    def __init__(self, database: Database, access: AccessControl, clock: Callable[[], datetime] = utcnow):
        self.db = database
        self.access = access
        self.clock = clock

    def list_items(self, user_id, list_id) -> List[dict]:
        self.access.assert_list_role(user_id, list_id)
        with self.db.session() as db:
            items = db.query(Item).filter(Item.list_id == as_uuid(list_id, "List")).all()
            return [item_view(i) for i in sort_items(items)]

    def _check_assignee(self, db, list_id, assignee_id):
        if assignee_id is None:
            return None
        try:
            aid = as_uuid(assignee_id, "User")
        except AppError:
            aid = None
        member = None
        if aid is not None:
            member = (
                db.query(ListMember.id)
                .filter(ListMember.list_id == list_id, ListMember.user_id == aid)
                .first()
            )
        if not member:
            raise validation_failed(
                "Assignee must be a member of this list",
                {"assignedToId": ["Assignee must be a member of this list"]},
            )
        return aid

    def _apply_status(self, item: Item, user_id, previous: ItemStatus):
        if item.status == ItemStatus.PURCHASED and previous != ItemStatus.PURCHASED:
            item.purchased_by_id = user_id
            item.purchased_at = self.clock()
        elif item.status != ItemStatus.PURCHASED and previous == ItemStatus.PURCHASED:
            item.purchased_by_id = None
            item.purchased_at = None

    def create_item(self, user_id, list_id, data: CreateItemIn) -> dict:
        self.access.assert_list_role(user_id, list_id, EDITORS)
        lid = as_uuid(list_id, "List")
        uid = as_uuid(user_id, "User")

        with self.db.session() as db:
            values = data.values()
            values["assigned_to_id"] = self._check_assignee(db, lid, values["assigned_to_id"])

            item = Item(list_id=lid, created_by_id=uid, **values)
            self._apply_status(item, uid, ItemStatus.TODO)
            db.add(item)
            db.commit()
            logger.info(f"Item {item.id} added to list {lid}")
            return item_view(item)

    def _load_item(self, db, list_id, item_id) -> Item:
        item = db.query(Item).filter(Item.id == as_uuid(item_id, "Item")).first()
        if not item:
            raise not_found("Item not found")
        if item.list_id != as_uuid(list_id, "List"):
            raise forbidden("Item does not belong to this list")
        return item

    def update_item(self, user_id, list_id, item_id, patch: ItemPatch) -> dict:
        self.access.assert_list_role(user_id, list_id, EDITORS)
        uid = as_uuid(user_id, "User")

        with self.db.session() as db:
            item = self._load_item(db, list_id, item_id)
            changes = patch.changes()
            if "assigned_to_id" in changes:
                changes["assigned_to_id"] = self._check_assignee(db, item.list_id, changes["assigned_to_id"])

            unit = changes.get("unit", item.unit)
            custom_unit = changes.get("custom_unit", item.custom_unit)
            if unit == ItemUnit.CUSTOM and not custom_unit:
                raise validation_failed(
                    "Custom unit name is required when unit is CUSTOM",
                    {"customUnit": ["Custom unit name is required when unit is CUSTOM"]},
                )

            previous = item.status
            for field, value in changes.items():
                setattr(item, field, value)
            self._apply_status(item, uid, previous)

            db.commit()
            return item_view(item)

    def delete_item(self, user_id, list_id, item_id) -> None:
        self.access.assert_list_role(user_id, list_id, EDITORS)
        with self.db.session() as db:
            item = self._load_item(db, list_id, item_id)
            db.delete(item)
            db.commit()
        logger.info(f"Item {item_id} deleted from list {list_id}")
