"""Query repositories that select API shapes directly.

Unlike `repositories`, nothing here returns managed entities: each query
names exactly the columns a response needs and the rows are turned into
the DTOs below. The DTOs are therefore tied to a particular API response
and live next to the queries that fill them.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List

from pydantic import Field
from sqlmodel import Session, col, select

from . import models
from .config import settings
from .schemas import CamelModel


class OrderSimpleQueryDto(CamelModel):
    order_id: int
    name: str
    order_date: datetime
    order_status: models.OrderStatus
    address: models.Address


class OrderItemQueryDto(CamelModel):
    order_id: int = Field(exclude=True)
    item_name: str
    order_price: int
    count: int


class OrderQueryDto(CamelModel):
    order_id: int
    name: str
    order_date: datetime
    order_status: models.OrderStatus
    address: models.Address
    order_items: List[OrderItemQueryDto] = Field(default_factory=list)


def _order_columns():
    return (
        col(models.Order.id).label("order_id"),
        col(models.Member.name).label("name"),
        col(models.Order.order_date).label("order_date"),
        col(models.Order.status).label("order_status"),
        col(models.Delivery.city).label("city"),
        col(models.Delivery.street).label("street"),
        col(models.Delivery.zipcode).label("zipcode"),
    )


def _item_columns():
    return (
        col(models.OrderItem.order_id).label("order_id"),
        col(models.Item.name).label("item_name"),
        col(models.OrderItem.order_price).label("order_price"),
        col(models.OrderItem.count).label("item_count"),
    )


def _join_member_delivery(stmt):
    return (
        stmt.join(models.Member, col(models.Order.member_id) == models.Member.id)
        .join(models.Delivery, col(models.Order.delivery_id) == models.Delivery.id)
    )


def _address(row) -> models.Address:
    return models.Address(city=row.city, street=row.street, zipcode=row.zipcode)


def _order_fields(row) -> dict:
    return {
        "order_id": row.order_id,
        "name": row.name,
        "order_date": row.order_date,
        "order_status": row.order_status,
        "address": _address(row),
    }


def _item_dto(row) -> OrderItemQueryDto:
    return OrderItemQueryDto(
        order_id=row.order_id,
        item_name=row.item_name,
        order_price=row.order_price,
        count=row.item_count,
    )


class OrderSimpleQueryRepository:
    """Orders with their to-one associations, selected as DTOs."""
    def __init__(self, session: Session):
        self.session = session

    def find_order_dtos(self) -> List[OrderSimpleQueryDto]:
        """One statement; only the DTO's columns are selected."""
        stmt = _join_member_delivery(select(*_order_columns())).order_by(models.Order.id)
        return [OrderSimpleQueryDto(**_order_fields(row)) for row in self.session.exec(stmt).all()]


class OrderQueryRepository:
    """Orders with their order items, selected as DTOs.

    The three finders trade statement count against pagination:
    `find_order_query_dtos` (1 + N), `find_all_by_dto_optimization`
    (1 + 1) and `find_all_by_dto_flat` (1, rows regrouped in memory).
    """
    def __init__(self, session: Session):
        self.session = session

    def _find_orders(self) -> List[OrderQueryDto]:
        stmt = _join_member_delivery(select(*_order_columns())).order_by(models.Order.id)
        return [OrderQueryDto(**_order_fields(row)) for row in self.session.exec(stmt).all()]

    def _find_order_items(self, order_ids: Iterable[int]) -> List[OrderItemQueryDto]:
        stmt = (
            select(*_item_columns())
            .join(models.Item, col(models.OrderItem.item_id) == models.Item.id)
            .where(col(models.OrderItem.order_id).in_(list(order_ids)))
            .order_by(models.OrderItem.id)
        )
        return [_item_dto(row) for row in self.session.exec(stmt).all()]

    def find_order_query_dtos(self) -> List[OrderQueryDto]:
        """Root query, then one order-item query per order."""
        result = self._find_orders()
        for dto in result:
            dto.order_items = self._find_order_items([dto.order_id])
        return result

    def find_all_by_dto_optimization(self) -> List[OrderQueryDto]:
        """Root query, then the order items of every order with `IN`.

        Ids are sent in chunks of `BATCH_FETCH_SIZE`, so the statement
        count is 1 + ceil(orders / BATCH_FETCH_SIZE).
        """
        result = self._find_orders()
        order_ids = [dto.order_id for dto in result]
        items_by_order: Dict[int, List[OrderItemQueryDto]] = defaultdict(list)
        size = settings.BATCH_FETCH_SIZE
        for start in range(0, len(order_ids), size):
            for item in self._find_order_items(order_ids[start:start + size]):
                items_by_order[item.order_id].append(item)
        for dto in result:
            dto.order_items = items_by_order.get(dto.order_id, [])
        return result

    def find_all_by_dto_flat(self) -> List[OrderQueryDto]:
        """Single joined statement, one row per order item.

        Orders without items are not returned and, since rows are per
        order item, the result cannot be paginated by order.
        """
        stmt = (
            _join_member_delivery(select(*_order_columns(), *_item_columns()[1:]))
            .join(models.OrderItem, col(models.OrderItem.order_id) == models.Order.id)
            .join(models.Item, col(models.OrderItem.item_id) == models.Item.id)
            .order_by(models.Order.id, models.OrderItem.id)
        )
        grouped: Dict[int, OrderQueryDto] = {}
        for row in self.session.exec(stmt).all():
            dto = grouped.get(row.order_id)
            if dto is None:
                dto = grouped[row.order_id] = OrderQueryDto(**_order_fields(row))
            dto.order_items.append(_item_dto(row))
        return list(grouped.values())
