"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. JSON field names are camelCase; Python
attributes stay snake_case (`populate_by_name` accepts both on input).

Two families of response shapes live here:
- `*View` models mirror the entities one-to-one ("expose the entity")
  and are used by the v1 endpoints.
- `*Dto` models are API-specific shapes built from entities.
Shapes selected directly by queries live in `query_repositories`.
"""

from datetime import datetime
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import BaseModel, AfterValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Address, DeliveryStatus, OrderStatus

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class Result(CamelModel, Generic[T]):
    """Wrapper for list responses: `{"count": n, "data": [...]}`."""
    count: int
    data: List[T]


class OrderResult(CamelModel, Generic[T]):
    """Wrapper used by the collection order endpoints."""
    order_count: int
    data: List[T]


# --- members -------------------------------------------------------------

class MemberIn(CamelModel):
    """Entity-shaped payload accepted by `POST /api/v1/members`."""
    name: NonBlankStr
    address: Optional[Address] = None


class CreateMemberRequest(CamelModel):
    name: NonBlankStr


class CreateMemberResponse(CamelModel):
    id: int


class UpdateMemberRequest(CamelModel):
    name: NonBlankStr


class UpdateMemberResponse(CamelModel):
    id: int
    name: str


class MemberDto(CamelModel):
    name: str


class MemberView(CamelModel):
    id: int
    name: str
    address: Address


# --- items ---------------------------------------------------------------

class BookIn(CamelModel):
    """Payload for registering a book."""
    name: NonBlankStr
    price: int = Field(ge=0)
    stock_quantity: int = Field(ge=0)
    author: Optional[str] = None
    isbn: Optional[str] = None


class CreateItemResponse(CamelModel):
    id: int


class ItemView(CamelModel):
    id: int
    dtype: str
    name: str
    price: int
    stock_quantity: int
    author: Optional[str] = None
    isbn: Optional[str] = None
    artist: Optional[str] = None
    etc: Optional[str] = None
    director: Optional[str] = None
    actor: Optional[str] = None


# --- orders: entity views (v1) -------------------------------------------

class DeliveryView(CamelModel):
    id: int
    address: Address
    status: DeliveryStatus


class OrderItemView(CamelModel):
    id: int
    item: ItemView
    order_price: int
    count: int
    total_price: int


class OrderView(CamelModel):
    """Entity-shaped order.

    `order_items` and `total_price` are `None` when the collection was not
    initialized, the same way an unloaded lazy association serializes.
    """
    id: int
    member: MemberView
    delivery: DeliveryView
    order_date: datetime
    status: OrderStatus
    order_items: Optional[List[OrderItemView]] = None
    total_price: Optional[int] = None

    @classmethod
    def from_order(cls, order, include_items: bool = True) -> "OrderView":
        view = cls(
            id=order.id,
            member=MemberView.model_validate(order.member),
            delivery=DeliveryView.model_validate(order.delivery),
            order_date=order.order_date,
            status=order.status,
        )
        if include_items:
            view.order_items = [OrderItemView.model_validate(oi) for oi in order.order_items]
            view.total_price = order.total_price
        return view


# --- orders: DTOs built from entities (v2, v3, v3.1) ---------------------

class SimpleOrderDto(CamelModel):
    order_id: int
    name: str
    order_date: datetime
    order_status: OrderStatus
    address: Address

    @classmethod
    def from_order(cls, order) -> "SimpleOrderDto":
        return cls(
            order_id=order.id,
            name=order.member.name,  # lazy member
            order_date=order.order_date,
            order_status=order.status,
            address=order.delivery.address,  # lazy delivery
        )


class OrderItemDto(CamelModel):
    item_name: str
    order_price: int
    item_count: int

    @classmethod
    def from_order_item(cls, order_item) -> "OrderItemDto":
        return cls(
            item_name=order_item.item.name,
            order_price=order_item.order_price,
            item_count=order_item.count,
        )


class OrderDto(CamelModel):
    order_id: int
    name: str
    order_date: datetime
    order_status: OrderStatus
    address: Address
    order_items: List[OrderItemDto]

    @classmethod
    def from_order(cls, order) -> "OrderDto":
        return cls(
            order_id=order.id,
            name=order.member.name,
            order_date=order.order_date,
            order_status=order.status,
            address=order.delivery.address,
            order_items=[OrderItemDto.from_order_item(oi) for oi in order.order_items],
        )


# --- orders: write side --------------------------------------------------

class OrderRequest(CamelModel):
    member_id: int
    item_id: int
    count: int = Field(ge=1)


class CreateOrderResponse(CamelModel):
    id: int


class CancelOrderResponse(CamelModel):
    id: int
    status: OrderStatus
