"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and domain models. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories. Rule violations are raised as `ValueError` subclasses so
controllers can map them to 400 responses.
"""

import logging
from typing import List, Optional

from sqlmodel import Session

from . import models, repositories

logger = logging.getLogger("shopapi.services")


class DuplicateMemberError(ValueError):
    """Raised when joining with a name another member already uses."""


class EntityNotFoundError(LookupError):
    """Raised when a referenced id does not exist."""


class MemberService:
    """Member registration and profile updates."""
    def __init__(self, session: Session):
        self.session = session
        self.member_repo = repositories.MemberRepository(session)

    def join(self, member: models.Member) -> int:
        """Register `member` and return its new id.

        Raises `DuplicateMemberError` when the name is taken.
        """
        self._validate_duplicate_member(member)
        self.member_repo.save(member)
        logger.info("member joined id=%s", member.id)
        return member.id

    def _validate_duplicate_member(self, member: models.Member):
        if self.member_repo.find_by_name(member.name):
            raise DuplicateMemberError("member already exists")

    def find_members(self) -> List[models.Member]:
        return self.member_repo.list_all()

    def find_one(self, member_id: int) -> models.Member:
        member = self.member_repo.get(member_id)
        if member is None:
            raise EntityNotFoundError(f"member {member_id} not found")
        return member

    def update(self, member_id: int, name: str) -> models.Member:
        """Rename a member; the change is flushed on commit."""
        member = self.find_one(member_id)
        member.name = name
        return self.member_repo.save(member)


class ItemService:
    """Catalogue maintenance."""
    def __init__(self, session: Session):
        self.session = session
        self.item_repo = repositories.ItemRepository(session)

    def save_item(self, item: models.Item) -> models.Item:
        return self.item_repo.save(item)

    def update_item(self, item_id: int, name: str, price: int, stock_quantity: int) -> models.Item:
        item = self.find_one(item_id)
        item.name = name
        item.price = price
        item.stock_quantity = stock_quantity
        return self.item_repo.save(item)

    def find_items(self) -> List[models.Item]:
        return self.item_repo.list_all()

    def find_one(self, item_id: int) -> models.Item:
        item = self.item_repo.get(item_id)
        if item is None:
            raise EntityNotFoundError(f"item {item_id} not found")
        return item


class OrderService:
    """Placing, cancelling and searching orders."""
    def __init__(self, session: Session):
        self.session = session
        self.order_repo = repositories.OrderRepository(session)
        self.member_repo = repositories.MemberRepository(session)
        self.item_repo = repositories.ItemRepository(session)

    def order(self, member_id: int, item_id: int, count: int) -> int:
        """Place a single-line order and return its id.

        The delivery ships to the member's address and the line is priced
        at the item's current price. Raises `NotEnoughStockError` when the
        item cannot cover `count`.
        """
        member = self.member_repo.get(member_id)
        if member is None:
            raise EntityNotFoundError(f"member {member_id} not found")
        item = self.item_repo.get(item_id)
        if item is None:
            raise EntityNotFoundError(f"item {item_id} not found")

        delivery = models.Delivery(
            city=member.city,
            street=member.street,
            zipcode=member.zipcode,
            status=models.DeliveryStatus.READY,
        )
        order_item = models.OrderItem.create(item, item.price, count)
        order = models.Order.create(member, delivery, order_item)
        self.order_repo.save(order)
        logger.info("order placed id=%s member_id=%s item_id=%s count=%s", order.id, member_id, item_id, count)
        return order.id

    def cancel_order(self, order_id: int) -> models.Order:
        """Cancel an order and restore stock for each of its lines."""
        order = self.order_repo.get(order_id)
        if order is None:
            raise EntityNotFoundError(f"order {order_id} not found")
        order.cancel()
        self.session.commit()
        self.session.refresh(order)
        logger.info("order cancelled id=%s", order_id)
        return order

    def find_orders(self, search: Optional[repositories.OrderSearch] = None) -> List[models.Order]:
        return self.order_repo.find_all(search or repositories.OrderSearch())
