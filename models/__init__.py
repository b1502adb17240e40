from .base import Base
from .user import User
from .otp_code import OtpCode
from .shopping_list import ShoppingList, ListMember, MemberRole
from .invite import Invite
from .item import Item, ItemStatus, ItemPriority, ItemUnit, ItemCategory
from .message import Message
