"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (members,
items, orders). Repositories return SQLModel entities and perform
commits/refreshes where appropriate.

`OrderRepository` offers the same listing with different loading plans;
what gets selected up front versus lazily is decided here, never in the
HTTP handlers.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import joinedload, selectinload
from sqlmodel import Session, col, select

from . import models
from .config import settings


@dataclass
class OrderSearch:
    """Optional filters for `OrderRepository.find_all`."""
    member_name: Optional[str] = None
    order_status: Optional[models.OrderStatus] = None


class MemberRepository:
    """CRUD operations for `Member` objects."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, member: models.Member) -> models.Member:
        """Persist a member and return the managed instance."""
        self.session.add(member)
        self.session.commit()
        self.session.refresh(member)
        return member

    def get(self, member_id: int) -> Optional[models.Member]:
        return self.session.get(models.Member, member_id)

    def list_all(self) -> List[models.Member]:
        stmt = select(models.Member).order_by(models.Member.id)
        return self.session.exec(stmt).all()

    def find_by_name(self, name: str) -> List[models.Member]:
        """Return every member whose name equals `name` exactly."""
        stmt = select(models.Member).where(models.Member.name == name)
        return self.session.exec(stmt).all()


class ItemRepository:
    """CRUD operations for `Item` objects."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, item: models.Item) -> models.Item:
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def get(self, item_id: int) -> Optional[models.Item]:
        return self.session.get(models.Item, item_id)

    def list_all(self) -> List[models.Item]:
        stmt = select(models.Item).order_by(models.Item.id)
        return self.session.exec(stmt).all()


class OrderRepository:
    """Persistence and listing strategies for the `Order` aggregate."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, order: models.Order) -> models.Order:
        """Persist an order together with its delivery and order items."""
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def get(self, order_id: int) -> Optional[models.Order]:
        return self.session.get(models.Order, order_id)

    def find_all(self, search: OrderSearch) -> List[models.Order]:
        """Return orders matching `search`, associations left lazy.

        The member join only serves the name filter; member, delivery and
        order items are selected later, on first access. At most
        `ORDER_SEARCH_LIMIT` orders are returned.
        """
        stmt = select(models.Order).join(models.Order.member)
        if search.order_status is not None:
            stmt = stmt.where(models.Order.status == search.order_status)
        if search.member_name:
            stmt = stmt.where(col(models.Member.name).contains(search.member_name))
        stmt = stmt.order_by(models.Order.id).limit(settings.ORDER_SEARCH_LIMIT)
        return self.session.exec(stmt).all()

    def find_all_with_member_delivery(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        batch_collections: bool = False,
    ) -> List[models.Order]:
        """Return orders with member and delivery joined in the same statement.

        To-one joins never multiply rows, so `offset`/`limit` stay exact.
        With `batch_collections` the order items and their items are
        loaded afterwards with one `IN` statement per level instead of
        one statement per order.
        """
        stmt = select(models.Order).options(
            joinedload(models.Order.member, innerjoin=True),
            joinedload(models.Order.delivery, innerjoin=True),
        )
        if batch_collections:
            stmt = stmt.options(
                selectinload(models.Order.order_items).selectinload(models.OrderItem.item)
            )
        stmt = stmt.order_by(models.Order.id)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.exec(stmt).all()

    def find_all_with_item(self) -> List[models.Order]:
        """Return orders with the whole graph joined in one statement.

        The collection join repeats each order once per order item, so the
        rows are de-duplicated by identity. Pagination is not supported:
        a LIMIT would cut order items, not orders.
        """
        stmt = (
            select(models.Order)
            .options(
                joinedload(models.Order.member, innerjoin=True),
                joinedload(models.Order.delivery, innerjoin=True),
                joinedload(models.Order.order_items).joinedload(models.OrderItem.item),
            )
            .order_by(models.Order.id)
        )
        return self.session.exec(stmt).unique().all()
