import pytest
from fastapi.testclient import TestClient
from sqlmodel import select

from shopapi import models, repositories, services
from shopapi.main import app

client = TestClient(app)


def _book(session, name='Test BOOK', price=10000, stock=10):
    return services.ItemService(session).save_item(models.Item(dtype='B', name=name, price=price, stock_quantity=stock))


def _member(session, name='orderer'):
    member = models.Member(name=name, city='Seoul', street='river', zipcode='123-123')
    services.MemberService(session).join(member)
    return member


def test_place_order_takes_stock_and_ships_to_member(session):
    member = _member(session)
    book = _book(session)
    order_id = services.OrderService(session).order(member.id, book.id, 2)

    order = repositories.OrderRepository(session).get(order_id)
    assert order.status == models.OrderStatus.ORDER
    assert order.delivery.address == member.address
    assert order.delivery.status == models.DeliveryStatus.READY
    assert len(order.order_items) == 1
    assert order.total_price == 10000 * 2
    session.refresh(book)
    assert book.stock_quantity == 8


def test_order_more_than_stock_fails(session):
    member = _member(session)
    book = _book(session, stock=10)
    with pytest.raises(models.NotEnoughStockError):
        services.OrderService(session).order(member.id, book.id, 11)
    assert session.exec(select(models.Order).where(models.Order.member_id == member.id)).all() == []


def test_cancel_order_restores_stock(session):
    member = _member(session)
    book = _book(session, stock=10)
    svc = services.OrderService(session)
    order_id = svc.order(member.id, book.id, 2)

    order = svc.cancel_order(order_id)
    assert order.status == models.OrderStatus.CANCEL
    session.refresh(book)
    assert book.stock_quantity == 10


def test_cancel_delivered_order_fails(session):
    member = _member(session)
    book = _book(session)
    svc = services.OrderService(session)
    order = repositories.OrderRepository(session).get(svc.order(member.id, book.id, 1))
    order.delivery.status = models.DeliveryStatus.COMP
    session.commit()
    with pytest.raises(models.OrderCancelError):
        svc.cancel_order(order.id)


def test_join_rejects_duplicate_names(session):
    _member(session, name='kim')
    with pytest.raises(services.DuplicateMemberError):
        services.MemberService(session).join(models.Member(name='kim'))


def test_update_item(session):
    book = _book(session)
    updated = services.ItemService(session).update_item(book.id, 'Renamed BOOK', 12000, 3)
    assert (updated.name, updated.price, updated.stock_quantity) == ('Renamed BOOK', 12000, 3)
    with pytest.raises(services.EntityNotFoundError):
        services.ItemService(session).find_one(9999)


def test_find_orders_by_search(session):
    svc = services.OrderService(session)
    assert len(svc.find_orders()) == 2
    found = svc.find_orders(repositories.OrderSearch(member_name='userB'))
    assert [o.member.name for o in found] == ['userB']
    found = svc.find_orders(repositories.OrderSearch(order_status=models.OrderStatus.CANCEL))
    assert found == []


def test_order_endpoints_flow():
    book = client.post('/api/v1/items', json={'name': 'API BOOK', 'price': 5000, 'stockQuantity': 3, 'author': 'kim', 'isbn': '1'})
    assert book.status_code == 200
    item_id = book.json()['id']

    placed = client.post('/api/v1/orders', json={'memberId': 1, 'itemId': item_id, 'count': 2})
    assert placed.status_code == 200
    order_id = placed.json()['id']

    too_many = client.post('/api/v1/orders', json={'memberId': 1, 'itemId': item_id, 'count': 2})
    assert too_many.status_code == 400
    assert too_many.json()['detail'] == 'need more stock'

    cancelled = client.post(f'/api/v1/orders/{order_id}/cancel')
    assert cancelled.json() == {'id': order_id, 'status': 'CANCEL'}
    items = {i['id']: i for i in client.get('/api/v1/items').json()}
    assert items[item_id]['stockQuantity'] == 3


def test_order_endpoints_report_missing_entities():
    assert client.post('/api/v1/orders', json={'memberId': 999, 'itemId': 1, 'count': 1}).status_code == 404
    assert client.post('/api/v1/orders/999/cancel').status_code == 404
    assert client.post('/api/v1/orders', json={'memberId': 1, 'itemId': 1, 'count': 0}).status_code == 400
    assert client.post('/api/v1/items', json={'name': 'neg', 'price': -1, 'stockQuantity': 1}).status_code == 400


def test_cancel_twice_fails_and_keeps_stock(session):
    member = _member(session)
    book = _book(session, stock=10)
    svc = services.OrderService(session)
    order_id = svc.order(member.id, book.id, 4)
    svc.cancel_order(order_id)
    with pytest.raises(models.OrderCancelError):
        svc.cancel_order(order_id)
    session.refresh(book)
    assert book.stock_quantity == 10


def test_cancel_endpoint_rejects_repeat():
    first = client.post('/api/v1/orders/1/cancel')
    assert first.status_code == 200
    again = client.post('/api/v1/orders/1/cancel')
    assert again.status_code == 400
    assert again.json()['detail'] == 'order already cancelled'
    stock = {i['name']: i['stockQuantity'] for i in client.get('/api/v1/items').json()}
    assert stock['JPA1 BOOK'] == 100
    assert stock['JPA2 BOOK'] == 100


def test_find_all_is_capped_by_search_limit(session, monkeypatch):
    monkeypatch.setattr('shopapi.repositories.settings.ORDER_SEARCH_LIMIT', 1)
    found = repositories.OrderRepository(session).find_all(repositories.OrderSearch())
    assert [o.member.name for o in found] == ['userA']
