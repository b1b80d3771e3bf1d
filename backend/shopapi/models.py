"""SQLModel data models.

This module defines the shop's database tables using SQLModel. Every
association is lazy: the related rows are only selected when the
attribute is first accessed while the owning session is still open.
Repositories decide per query whether to join them up front instead.

Domain rules that belong to a single aggregate (stock bookkeeping,
order creation and cancellation) live on the models themselves.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlmodel import SQLModel, Field, Relationship


class NotEnoughStockError(ValueError):
    """Raised when an order asks for more units than an item has in stock."""


class OrderCancelError(ValueError):
    """Raised when cancelling an order that was already cancelled or delivered."""


class OrderStatus(str, Enum):
    ORDER = "ORDER"
    CANCEL = "CANCEL"


class DeliveryStatus(str, Enum):
    READY = "READY"
    COMP = "COMP"


class Address(SQLModel):
    """Value object embedded (as three columns) in `Member` and `Delivery`."""
    city: Optional[str] = None
    street: Optional[str] = None
    zipcode: Optional[str] = None


class Member(SQLModel, table=True):
    """A shop customer.

    Fields:
    - `name`: display name, unique across members (enforced by `MemberService`)
    - `city`/`street`/`zipcode`: the embedded `Address`
    - `orders`: reverse side of `Order.member`; never serialized
    """
    __tablename__ = "member"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    city: Optional[str] = None
    street: Optional[str] = None
    zipcode: Optional[str] = None
    orders: List["Order"] = Relationship(back_populates="member")

    @property
    def address(self) -> Address:
        return Address(city=self.city, street=self.street, zipcode=self.zipcode)


class Item(SQLModel, table=True):
    """A sellable item.

    Books, albums and movies share this table; `dtype` tells them apart
    (`B`, `A`, `M`) and only the matching subtype columns are filled.
    """
    __tablename__ = "item"

    id: Optional[int] = Field(default=None, primary_key=True)
    dtype: str = Field(default="B", max_length=1)
    name: str
    price: int = 0
    stock_quantity: int = 0
    author: Optional[str] = None
    isbn: Optional[str] = None
    artist: Optional[str] = None
    etc: Optional[str] = None
    director: Optional[str] = None
    actor: Optional[str] = None

    def add_stock(self, quantity: int) -> None:
        self.stock_quantity += quantity

    def remove_stock(self, quantity: int) -> None:
        rest = self.stock_quantity - quantity
        if rest < 0:
            raise NotEnoughStockError("need more stock")
        self.stock_quantity = rest


class Delivery(SQLModel, table=True):
    """Shipping record for exactly one `Order`."""
    __tablename__ = "delivery"

    id: Optional[int] = Field(default=None, primary_key=True)
    city: Optional[str] = None
    street: Optional[str] = None
    zipcode: Optional[str] = None
    status: DeliveryStatus = DeliveryStatus.READY
    order: Optional["Order"] = Relationship(
        back_populates="delivery",
        sa_relationship_kwargs={"uselist": False},
    )

    @property
    def address(self) -> Address:
        return Address(city=self.city, street=self.street, zipcode=self.zipcode)


class Order(SQLModel, table=True):
    """An order placed by a `Member`, shipped through one `Delivery`.

    `Order` is the aggregate root: saving it cascades to its delivery and
    order items.
    """
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: Optional[int] = Field(default=None, foreign_key="member.id", index=True)
    delivery_id: Optional[int] = Field(default=None, foreign_key="delivery.id")
    order_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: OrderStatus = OrderStatus.ORDER
    member: Optional[Member] = Relationship(back_populates="orders")
    delivery: Optional[Delivery] = Relationship(back_populates="order")
    order_items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.id"},
    )

    @classmethod
    def create(cls, member: Member, delivery: Delivery, *order_items: "OrderItem") -> "Order":
        """Build a new order in the `ORDER` state from its parts."""
        order = cls(status=OrderStatus.ORDER, order_date=datetime.now(timezone.utc))
        order.member = member
        order.delivery = delivery
        for order_item in order_items:
            order.add_order_item(order_item)
        return order

    def add_order_item(self, order_item: "OrderItem") -> None:
        self.order_items.append(order_item)

    def cancel(self) -> None:
        """Cancel the order and put every line's quantity back in stock."""
        if self.status == OrderStatus.CANCEL:
            raise OrderCancelError("order already cancelled")
        if self.delivery is not None and self.delivery.status == DeliveryStatus.COMP:
            raise OrderCancelError("delivered orders cannot be cancelled")
        self.status = OrderStatus.CANCEL
        for order_item in self.order_items:
            order_item.cancel()

    @property
    def total_price(self) -> int:
        return sum(order_item.total_price for order_item in self.order_items)


class OrderItem(SQLModel, table=True):
    """A single line of an `Order`: one item at the price paid."""
    __tablename__ = "order_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    item_id: Optional[int] = Field(default=None, foreign_key="item.id")
    order_price: int = 0
    count: int = 0
    order: Optional[Order] = Relationship(back_populates="order_items")
    item: Optional[Item] = Relationship()

    @classmethod
    def create(cls, item: Item, order_price: int, count: int) -> "OrderItem":
        """Create a line and take `count` units out of the item's stock."""
        order_item = cls(order_price=order_price, count=count)
        order_item.item = item
        item.remove_stock(count)
        return order_item

    def cancel(self) -> None:
        self.item.add_stock(self.count)

    @property
    def total_price(self) -> int:
        return self.order_price * self.count
