"""Sample catalogue, members and orders for local development.

`init_db` seeds two members with one order each:

* userA (Seoul): "JPA1 BOOK" x1 at 10000 and "JPA2 BOOK" x2 at 20000
* userB (Jinju): "SPRING1 BOOK" x3 at 20000 and "SPRING2 BOOK" x4 at 40000

Seeding is skipped when the member table already has rows.
"""

import logging

from sqlmodel import Session, select

from .. import models

logger = logging.getLogger("shopapi.sample_data")


def _member(name: str, city: str, street: str, zipcode: str) -> models.Member:
    return models.Member(name=name, city=city, street=street, zipcode=zipcode)


def _book(name: str, price: int, stock_quantity: int) -> models.Item:
    return models.Item(dtype="B", name=name, price=price, stock_quantity=stock_quantity)


def _delivery(member: models.Member) -> models.Delivery:
    return models.Delivery(city=member.city, street=member.street, zipcode=member.zipcode)


def _seed_order(session: Session, member: models.Member, lines) -> models.Order:
    order_items = []
    for book, count in lines:
        session.add(book)
        order_items.append(models.OrderItem.create(book, book.price, count))
    order = models.Order.create(member, _delivery(member), *order_items)
    session.add(member)
    session.add(order)
    return order


def init_db(session: Session) -> bool:
    """Insert the sample data. Returns False when the database was not empty."""
    if session.exec(select(models.Member.id)).first() is not None:
        return False

    user_a = _member("userA", "Seoul", "1", "1111")
    _seed_order(session, user_a, [
        (_book("JPA1 BOOK", 10000, 100), 1),
        (_book("JPA2 BOOK", 20000, 100), 2),
    ])

    user_b = _member("userB", "Jinju", "2", "2222")
    _seed_order(session, user_b, [
        (_book("SPRING1 BOOK", 20000, 200), 3),
        (_book("SPRING2 BOOK", 40000, 300), 4),
    ])

    session.commit()
    logger.info("sample data inserted")
    return True
