"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the shop API. Controllers are
intentionally thin: they accept requests, delegate to services or
repositories, and map the result to a response shape.

The order listings come in several versions that return the same data
with different loading plans:

Simple orders (member and delivery only):
- v1: entities exposed as-is, lazy associations touched in the handler
- v2: entities mapped to DTOs, associations loaded lazily (1 + N + N)
- v3: entities mapped to DTOs, associations joined up front (1)
- v4: DTOs selected directly by the query (1)

Orders (with order items and items):
- v1: entities exposed as-is, every association touched in the handler
- v2: entities mapped to DTOs, everything lazy
- v3: whole graph joined in one statement, no pagination
- v3.1: to-one joined and paginated, collections loaded with `IN`
- v4: DTO query, then one item query per order (1 + N)
- v5: DTO query, then one `IN` item query (1 + 1)
- v6: one flat DTO query regrouped in memory (1), no pagination

Endpoints implemented:
- GET /health
- POST /api/v1/members, POST /api/v2/members, PUT /api/v2/members/{id}
- GET /api/v1/members, GET /api/v2/members
- POST /api/v1/items, GET /api/v1/items
- POST /api/v1/orders, POST /api/v1/orders/{id}/cancel
- GET /api/v1..v4/simple-orders
- GET /api/v1..v6/orders, GET /api/v3.1/orders
"""

import json
import logging
import time
import uuid
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from . import models, repositories, schemas, services
from .config import settings
from .database import create_db_and_tables, engine, get_session
from .query_repositories import (
    OrderQueryDto,
    OrderQueryRepository,
    OrderSimpleQueryDto,
    OrderSimpleQueryRepository,
)
from .utils.sample_data import init_db

app = FastAPI(title="Shop API")
logger = logging.getLogger("shopapi.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

create_db_and_tables()
if settings.INIT_DB:
    with Session(engine) as _session:
        init_db(_session)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 Bad Request."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def order_search(
    member_name: Optional[str] = Query(None, alias="memberName"),
    order_status: Optional[models.OrderStatus] = Query(None, alias="orderStatus"),
) -> repositories.OrderSearch:
    """Build an `OrderSearch` from the optional listing filters."""
    return repositories.OrderSearch(member_name=member_name, order_status=order_status)


@app.get("/health")
def health():
    return {"status": "ok"}


# --- members -------------------------------------------------------------

@app.post("/api/v1/members", response_model=schemas.CreateMemberResponse)
def save_member_v1(payload: schemas.MemberIn, db: Session = Depends(get_session)):
    """Register a member from an entity-shaped body (name + address)."""
    address = payload.address or models.Address()
    member = models.Member(name=payload.name, **address.model_dump())
    try:
        member_id = services.MemberService(db).join(member)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.CreateMemberResponse(id=member_id)


@app.post("/api/v2/members", response_model=schemas.CreateMemberResponse)
def save_member_v2(payload: schemas.CreateMemberRequest, db: Session = Depends(get_session)):
    """Register a member from a request shape that only carries the name."""
    try:
        member_id = services.MemberService(db).join(models.Member(name=payload.name))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.CreateMemberResponse(id=member_id)


@app.put("/api/v2/members/{member_id}", response_model=schemas.UpdateMemberResponse)
def update_member_v2(member_id: int, payload: schemas.UpdateMemberRequest, db: Session = Depends(get_session)):
    svc = services.MemberService(db)
    try:
        svc.update(member_id, payload.name)
    except services.EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    member = svc.find_one(member_id)
    return schemas.UpdateMemberResponse(id=member.id, name=member.name)


@app.get("/api/v1/members", response_model=List[schemas.MemberView])
def members_v1(db: Session = Depends(get_session)):
    """Expose member entities (orders are left out to avoid a cycle)."""
    return [schemas.MemberView.model_validate(m) for m in services.MemberService(db).find_members()]


@app.get("/api/v2/members", response_model=schemas.Result[schemas.MemberDto])
def members_v2(db: Session = Depends(get_session)):
    data = [schemas.MemberDto(name=m.name) for m in services.MemberService(db).find_members()]
    return schemas.Result[schemas.MemberDto](count=len(data), data=data)


# --- items ---------------------------------------------------------------

@app.post("/api/v1/items", response_model=schemas.CreateItemResponse)
def create_book(payload: schemas.BookIn, db: Session = Depends(get_session)):
    item = models.Item(dtype="B", **payload.model_dump())
    item = services.ItemService(db).save_item(item)
    return schemas.CreateItemResponse(id=item.id)


@app.get("/api/v1/items", response_model=List[schemas.ItemView])
def list_items(db: Session = Depends(get_session)):
    return [schemas.ItemView.model_validate(i) for i in services.ItemService(db).find_items()]


# --- orders: write side --------------------------------------------------

@app.post("/api/v1/orders", response_model=schemas.CreateOrderResponse)
def place_order(payload: schemas.OrderRequest, db: Session = Depends(get_session)):
    """Order `count` units of one item for a member."""
    try:
        order_id = services.OrderService(db).order(payload.member_id, payload.item_id, payload.count)
    except services.EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.CreateOrderResponse(id=order_id)


@app.post("/api/v1/orders/{order_id}/cancel", response_model=schemas.CancelOrderResponse)
def cancel_order(order_id: int, db: Session = Depends(get_session)):
    try:
        order = services.OrderService(db).cancel_order(order_id)
    except services.EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return schemas.CancelOrderResponse(id=order.id, status=order.status)


# --- simple orders: Order -> Member, Order -> Delivery --------------------

@app.get("/api/v1/simple-orders", response_model=List[schemas.OrderView])
def simple_orders_v1(search: repositories.OrderSearch = Depends(order_search), db: Session = Depends(get_session)):
    """Expose order entities; member and delivery are loaded on access.

    Order items are never touched, so they stay uninitialized (`null`).
    """
    orders = services.OrderService(db).find_orders(search)
    return [schemas.OrderView.from_order(o, include_items=False) for o in orders]


@app.get("/api/v2/simple-orders", response_model=schemas.Result[schemas.SimpleOrderDto])
def simple_orders_v2(search: repositories.OrderSearch = Depends(order_search), db: Session = Depends(get_session)):
    """Map lazily loaded entities: 1 order query + N member + N delivery queries.

    Members or deliveries already in the session are not selected again.
    """
    orders = services.OrderService(db).find_orders(search)
    data = [schemas.SimpleOrderDto.from_order(o) for o in orders]
    return schemas.Result[schemas.SimpleOrderDto](count=len(data), data=data)


@app.get("/api/v3/simple-orders", response_model=schemas.Result[schemas.SimpleOrderDto])
def simple_orders_v3(db: Session = Depends(get_session)):
    """Map entities whose member and delivery were joined: one query."""
    orders = repositories.OrderRepository(db).find_all_with_member_delivery()
    data = [schemas.SimpleOrderDto.from_order(o) for o in orders]
    return schemas.Result[schemas.SimpleOrderDto](count=len(data), data=data)


@app.get("/api/v4/simple-orders", response_model=schemas.Result[OrderSimpleQueryDto])
def simple_orders_v4(db: Session = Depends(get_session)):
    """Select the DTO columns directly: one query, no managed entities."""
    data = OrderSimpleQueryRepository(db).find_order_dtos()
    return schemas.Result[OrderSimpleQueryDto](count=len(data), data=data)


# --- orders: Order -> OrderItems -> Item ---------------------------------

@app.get("/api/v1/orders", response_model=List[schemas.OrderView])
def orders_v1(search: repositories.OrderSearch = Depends(order_search), db: Session = Depends(get_session)):
    """Expose order entities with every association initialized."""
    orders = services.OrderService(db).find_orders(search)
    # touching a lazy attribute loads it while the session is open
    for order in orders:
        order.member
        order.delivery
        for order_item in order.order_items:
            order_item.item
    return [schemas.OrderView.from_order(o) for o in orders]


@app.get("/api/v2/orders", response_model=schemas.OrderResult[schemas.OrderDto])
def orders_v2(search: repositories.OrderSearch = Depends(order_search), db: Session = Depends(get_session)):
    orders = services.OrderService(db).find_orders(search)
    data = [schemas.OrderDto.from_order(o) for o in orders]
    return schemas.OrderResult[schemas.OrderDto](order_count=len(data), data=data)


@app.get("/api/v3/orders", response_model=schemas.OrderResult[schemas.OrderDto])
def orders_v3(db: Session = Depends(get_session)):
    """One statement for the whole graph; duplicate order rows are collapsed."""
    orders = repositories.OrderRepository(db).find_all_with_item()
    data = [schemas.OrderDto.from_order(o) for o in orders]
    return schemas.OrderResult[schemas.OrderDto](order_count=len(data), data=data)


@app.get("/api/v3.1/orders", response_model=schemas.OrderResult[schemas.OrderDto])
def orders_v3_page(
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    db: Session = Depends(get_session),
):
    """Paginated orders: to-one joined, collections batch loaded with `IN`."""
    orders = repositories.OrderRepository(db).find_all_with_member_delivery(
        offset=offset, limit=limit, batch_collections=True
    )
    data = [schemas.OrderDto.from_order(o) for o in orders]
    return schemas.OrderResult[schemas.OrderDto](order_count=len(data), data=data)


@app.get("/api/v4/orders", response_model=List[OrderQueryDto])
def orders_v4(db: Session = Depends(get_session)):
    return OrderQueryRepository(db).find_order_query_dtos()


@app.get("/api/v5/orders", response_model=List[OrderQueryDto])
def orders_v5(db: Session = Depends(get_session)):
    return OrderQueryRepository(db).find_all_by_dto_optimization()


@app.get("/api/v6/orders", response_model=List[OrderQueryDto])
def orders_v6(db: Session = Depends(get_session)):
    return OrderQueryRepository(db).find_all_by_dto_flat()
