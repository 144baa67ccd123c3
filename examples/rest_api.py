"""
RelayASGI REST API Example

CRUD for users, products and orders under /api/v1, backed by an in-memory
store.

To run this application:
    python examples/rest_api.py

Example requests:
    curl http://localhost:3000/api/v1/users
    curl -X POST -H 'Content-Type: application/json' \
         -d '{"name": "Ada", "email": "ada@example.com"}' http://localhost:3000/api/v1/users
    curl -X POST -H 'Content-Type: application/json' \
         -d '{"user_id": 1, "product_id": 2, "quantity": 3}' http://localhost:3000/api/v1/orders
    curl http://localhost:3000/api/v1/stats
"""

import dataclasses
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from relayasgi import (
    AppConfig,
    HTTPException,
    RelayASGI,
    Request,
    RequestContext,
    error_response,
    html_response,
    json_response,
)
from relayasgi.middleware import CallNext, CORSMiddleware, RequestLoggerMiddleware

API_VERSION = "1.0.0"
ORDER_STATUSES = ("pending", "processing", "completed", "cancelled")


def _now() -> int:
    return int(time.time())


@dataclass
class User:
    id: int
    name: str
    email: str
    created_at: int = field(default_factory=_now)
    updated_at: int = field(default_factory=_now)


@dataclass
class Product:
    id: int
    name: str
    description: str
    price: float
    stock: int
    category: str
    created_at: int = field(default_factory=_now)
    updated_at: int = field(default_factory=_now)


@dataclass
class Order:
    id: int
    user_id: int
    product_id: int
    quantity: int
    total_price: float
    status: str = "pending"
    created_at: int = field(default_factory=_now)
    updated_at: int = field(default_factory=_now)


T = TypeVar("T")


class ResourceStore(Generic[T]):
    """
    Thread-safe in-memory collection with incrementing integer ids.

    Ids are never reused, even after a delete.
    """

    def __init__(self, factory: Callable[..., T]):
        self._factory = factory
        self._items: Dict[int, T] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, **fields: Any) -> T:
        with self._lock:
            item = self._factory(id=self._next_id, **fields)
            self._items[self._next_id] = item
            self._next_id += 1
            return item

    def get(self, item_id: int) -> Optional[T]:
        with self._lock:
            return self._items.get(item_id)

    def list(self, predicate: Optional[Callable[[T], bool]] = None) -> List[T]:
        with self._lock:
            items = list(self._items.values())
        if predicate is None:
            return items
        return [item for item in items if predicate(item)]

    def update(self, item_id: int, **fields: Any) -> Optional[T]:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            updated = dataclasses.replace(item, updated_at=_now(), **fields)
            self._items[item_id] = updated
            return updated

    def delete(self, item_id: int) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Database:
    """The three stores used by the API."""

    def __init__(self):
        self.users: ResourceStore[User] = ResourceStore(User)
        self.products: ResourceStore[Product] = ResourceStore(Product)
        self.orders: ResourceStore[Order] = ResourceStore(Order)

    def seed(self) -> "Database":
        self.users.create(name="John Doe", email="john@example.com")
        self.users.create(name="Jane Smith", email="jane@example.com")
        self.products.create(
            name="Laptop",
            description="High-performance laptop",
            price=999.99,
            stock=10,
            category="electronics",
        )
        self.products.create(
            name="Coffee Mug",
            description="Ceramic coffee mug",
            price=12.99,
            stock=50,
            category="home",
        )
        self.orders.create(user_id=1, product_id=1, quantity=1, total_price=999.99)
        return self


# Validation helpers


def _parse_id(raw: str, resource: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(400, f"Invalid {resource} ID format")


def _payload(request: Request) -> Dict[str, Any]:
    try:
        data = request.json()
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not isinstance(data, dict):
        raise HTTPException(400, "Request body must be a JSON object")
    return data


def _require_str(data: Dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(400, f"Field '{name}' is required and must be a non-empty string")
    return value.strip()


def _require_number(data: Dict[str, Any], name: str, integer: bool = False) -> Any:
    value = data.get(name)
    kinds = (int,) if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds) or value < 0:
        kind = "a non-negative integer" if integer else "a non-negative number"
        raise HTTPException(400, f"Field '{name}' must be {kind}")
    return value


def _validate_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise HTTPException(400, "Field 'email' must be a valid email address")
    return email


def _partial(data: Dict[str, Any], validators: Dict[str, Callable[[Dict[str, Any], str], Any]]):
    """Validate only the fields present in ``data``; at least one is required."""
    fields = {name: check(data, name) for name, check in validators.items() if name in data}
    if not fields:
        raise HTTPException(
            400, f"Provide at least one of: {', '.join(validators)}"
        )
    return fields


# Middleware


async def json_api(context: RequestContext, call_next: CallNext) -> None:
    """
    API requests carrying a body must be JSON; API responses are always JSON.
    """
    request = context.request
    if not request.path.startswith("/api/"):
        await call_next()
        return

    if request.method in ("POST", "PUT", "PATCH") and request.body and not request.is_json():
        context.respond(error_response(415, "Content-Type must be application/json"))
        return

    await call_next()
    response = context.response
    if response.body and "content-type" not in response.headers:
        response.headers["Content-Type"] = "application/json; charset=utf-8"


def create_app(db: Optional[Database] = None, config: Optional[AppConfig] = None) -> RelayASGI:
    """Build the REST API around ``db`` (a seeded database by default)."""
    db = db if db is not None else Database().seed()
    app = RelayASGI(config=config or AppConfig.from_env(port=3000))
    app.state.db = db

    app.add_middleware(RequestLoggerMiddleware())
    app.add_middleware(CORSMiddleware())
    app.add_middleware(json_api)

    @app.get("/")
    async def documentation():
        return html_response(DOCUMENTATION)

    @app.get("/api")
    async def api_info():
        return {
            "name": "RelayASGI REST API Example",
            "version": API_VERSION,
            "base_url": "/api/v1",
            "resources": {
                "users": "/api/v1/users",
                "products": "/api/v1/products",
                "orders": "/api/v1/orders",
            },
            "statistics": {
                "total_users": len(db.users),
                "total_products": len(db.products),
                "total_orders": len(db.orders),
            },
            "timestamp": _now(),
        }

    # Users

    @app.get("/api/v1/users")
    async def list_users():
        users = db.users.list()
        return {"users": users, "total": len(users), "timestamp": _now()}

    @app.get("/api/v1/users/{user_id}")
    async def get_user(user_id: str):
        user = db.users.get(_parse_id(user_id, "user"))
        if user is None:
            raise HTTPException(404, "User not found")
        return user

    @app.post("/api/v1/users")
    async def create_user(request: Request):
        data = _payload(request)
        user = db.users.create(
            name=_require_str(data, "name"),
            email=_validate_email(_require_str(data, "email")),
        )
        return json_response(
            {"message": "User created successfully", "user": user}, status_code=201
        )

    @app.put("/api/v1/users/{user_id}")
    async def update_user(request: Request, user_id: str):
        item_id = _parse_id(user_id, "user")
        fields = _partial(
            _payload(request),
            {"name": _require_str, "email": lambda d, n: _validate_email(_require_str(d, n))},
        )
        user = db.users.update(item_id, **fields)
        if user is None:
            raise HTTPException(404, "User not found")
        return {"message": "User updated successfully", "user": user}

    @app.delete("/api/v1/users/{user_id}")
    async def delete_user(user_id: str):
        if not db.users.delete(_parse_id(user_id, "user")):
            raise HTTPException(404, "User not found")

    @app.get("/api/v1/users/{user_id}/orders")
    async def user_orders(user_id: str):
        item_id = _parse_id(user_id, "user")
        if db.users.get(item_id) is None:
            raise HTTPException(404, "User not found")
        orders = db.orders.list(lambda order: order.user_id == item_id)
        return {"user_id": item_id, "orders": orders, "total": len(orders), "timestamp": _now()}

    # Products

    @app.get("/api/v1/products")
    async def list_products():
        products = db.products.list()
        return {"products": products, "total": len(products), "timestamp": _now()}

    @app.get("/api/v1/products/category/{category}")
    async def products_by_category(category: str):
        wanted = category.lower()
        products = db.products.list(lambda product: product.category.lower() == wanted)
        return {"category": category, "products": products, "total": len(products)}

    @app.get("/api/v1/products/{product_id}")
    async def get_product(product_id: str):
        product = db.products.get(_parse_id(product_id, "product"))
        if product is None:
            raise HTTPException(404, "Product not found")
        return product

    @app.post("/api/v1/products")
    async def create_product(request: Request):
        data = _payload(request)
        product = db.products.create(
            name=_require_str(data, "name"),
            description=data.get("description", "") or "",
            price=_require_number(data, "price"),
            stock=_require_number(data, "stock", integer=True),
            category=_require_str(data, "category"),
        )
        return json_response(
            {"message": "Product created successfully", "product": product}, status_code=201
        )

    @app.put("/api/v1/products/{product_id}")
    async def update_product(request: Request, product_id: str):
        item_id = _parse_id(product_id, "product")
        fields = _partial(
            _payload(request),
            {
                "name": _require_str,
                "description": _require_str,
                "price": _require_number,
                "stock": lambda d, n: _require_number(d, n, integer=True),
                "category": _require_str,
            },
        )
        product = db.products.update(item_id, **fields)
        if product is None:
            raise HTTPException(404, "Product not found")
        return {"message": "Product updated successfully", "product": product}

    @app.delete("/api/v1/products/{product_id}")
    async def delete_product(product_id: str):
        if not db.products.delete(_parse_id(product_id, "product")):
            raise HTTPException(404, "Product not found")

    # Orders

    @app.get("/api/v1/orders")
    async def list_orders():
        orders = db.orders.list()
        return {"orders": orders, "total": len(orders), "timestamp": _now()}

    @app.get("/api/v1/orders/{order_id}")
    async def get_order(order_id: str):
        order = db.orders.get(_parse_id(order_id, "order"))
        if order is None:
            raise HTTPException(404, "Order not found")
        return order

    @app.post("/api/v1/orders")
    async def create_order(request: Request):
        data = _payload(request)
        user_id = _require_number(data, "user_id", integer=True)
        product_id = _require_number(data, "product_id", integer=True)
        quantity = data.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise HTTPException(400, "Field 'quantity' must be a positive integer")
        if db.users.get(user_id) is None:
            raise HTTPException(400, f"User {user_id} does not exist")
        product = db.products.get(product_id)
        if product is None:
            raise HTTPException(400, f"Product {product_id} does not exist")

        order = db.orders.create(
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            total_price=round(product.price * quantity, 2),
        )
        return json_response(
            {"message": "Order created successfully", "order": order}, status_code=201
        )

    @app.put("/api/v1/orders/{order_id}")
    async def update_order(request: Request, order_id: str):
        item_id = _parse_id(order_id, "order")
        data = _payload(request)
        status = data.get("status")
        if status not in ORDER_STATUSES:
            raise HTTPException(
                400, f"Field 'status' must be one of: {', '.join(ORDER_STATUSES)}"
            )
        order = db.orders.update(item_id, status=status)
        if order is None:
            raise HTTPException(404, "Order not found")
        return {"message": "Order updated successfully", "order": order}

    @app.delete("/api/v1/orders/{order_id}")
    async def delete_order(order_id: str):
        if not db.orders.delete(_parse_id(order_id, "order")):
            raise HTTPException(404, "Order not found")

    # Statistics

    @app.get("/api/v1/stats")
    async def stats():
        orders = db.orders.list()
        products = db.products.list()
        by_status = {status: 0 for status in ORDER_STATUSES}
        for order in orders:
            by_status[order.status] = by_status.get(order.status, 0) + 1
        return {
            "overview": {
                "total_users": len(db.users),
                "total_products": len(products),
                "total_orders": len(orders),
                "total_revenue": round(sum(order.total_price for order in orders), 2),
            },
            "orders": {**by_status, "total": len(orders)},
            "inventory": {
                "total_stock": sum(product.stock for product in products),
                "products_count": len(products),
            },
            "api_info": {"version": API_VERSION, "timestamp": _now()},
        }

    return app


DOCUMENTATION = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>RelayASGI REST API</title></head>
<body>
    <h1>RelayASGI REST API Example</h1>
    <h2>Users</h2>
    <ul>
        <li><code>GET /api/v1/users</code>, <code>POST /api/v1/users</code></li>
        <li><code>GET|PUT|DELETE /api/v1/users/{id}</code></li>
        <li><code>GET /api/v1/users/{id}/orders</code></li>
    </ul>
    <h2>Products</h2>
    <ul>
        <li><code>GET /api/v1/products</code>, <code>POST /api/v1/products</code></li>
        <li><code>GET|PUT|DELETE /api/v1/products/{id}</code></li>
        <li><code>GET /api/v1/products/category/{category}</code></li>
    </ul>
    <h2>Orders</h2>
    <ul>
        <li><code>GET /api/v1/orders</code>, <code>POST /api/v1/orders</code></li>
        <li><code>GET|PUT|DELETE /api/v1/orders/{id}</code></li>
    </ul>
    <p><code>GET /api/v1/stats</code> - aggregate statistics</p>
</body>
</html>
"""

app = create_app()


def main():
    print("=" * 70)
    print("RELAYASGI REST API EXAMPLE")
    print("=" * 70)
    print(f"Server running at http://{app.config.host}:{app.config.port}")
    print("Resources:")
    print("  /api/v1/users     - GET, POST; /{id}: GET, PUT, DELETE")
    print("  /api/v1/products  - GET, POST; /{id}: GET, PUT, DELETE")
    print("  /api/v1/orders    - GET, POST; /{id}: GET, PUT, DELETE")
    print("  /api/v1/users/{id}/orders")
    print("  /api/v1/products/category/{category}")
    print("  /api/v1/stats")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 70)
    app.serve()


if __name__ == "__main__":
    main()
