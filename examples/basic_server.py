"""
RelayASGI Basic Server Example

A small server showing routing, path parameters, JSON and HTML responses
and the built-in request logger.

To run this application:
    python examples/basic_server.py
    # or
    uvicorn basic_server:app --app-dir examples --port 3000

Example requests:
    curl http://localhost:3000/hello/Ada
    curl -X POST -d 'ping' http://localhost:3000/api/echo
    curl -X POST -H 'Content-Type: application/json' \
         -d '{"a": 6, "b": 7, "operation": "multiply"}' http://localhost:3000/api/calculate
"""

import time
from datetime import datetime, timezone

from relayasgi import AppConfig, HTTPException, RelayASGI, Request, html_response
from relayasgi.middleware import RequestLoggerMiddleware

SERVER_NAME = "RelayASGI Basic Server"

config = AppConfig.from_env(port=3000)
app = RelayASGI(config=config)
app.add_middleware(RequestLoggerMiddleware())

OPERATIONS = {
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b,
}

HOME_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>RelayASGI Basic Server</title></head>
<body>
    <h1>RelayASGI Basic Server</h1>
    <p>A minimal server built on the RelayASGI middleware pipeline.</p>
    <ul>
        <li><code>GET /hello/{name}</code> - personalised greeting</li>
        <li><code>GET /api/status</code> - server status</li>
        <li><code>POST /api/echo</code> - echo the request body</li>
        <li><code>GET /api/time</code> - server time</li>
        <li><code>GET /users/{id}</code> - sample user</li>
        <li><code>POST /api/calculate</code> - JSON calculator</li>
    </ul>
</body>
</html>
"""


@app.get("/")
async def home():
    return html_response(HOME_PAGE)


@app.get("/hello/{name}")
async def hello(name: str):
    return {
        "message": "Hello from RelayASGI!",
        "name": name,
        "timestamp": int(time.time()),
        "server": SERVER_NAME,
    }


@app.get("/api/status")
async def status():
    return {
        "server": SERVER_NAME,
        "status": "healthy",
        "endpoints": len(app.api_router.routes),
        "middleware": app.middleware_chain.count(),
        "timestamp": int(time.time()),
    }


@app.post("/api/echo")
async def echo(request: Request):
    return {
        "echo": request.text,
        "length": len(request.body),
        "method": request.method,
        "content_type": request.content_type or "unknown",
        "timestamp": int(time.time()),
    }


@app.get("/api/time")
async def server_time():
    now = datetime.now(timezone.utc)
    return {
        "timestamp": int(now.timestamp()),
        "iso_string": now.isoformat(),
        "timezone": "UTC",
    }


@app.get("/users/{user_id}")
async def user(user_id: str):
    return {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"user{user_id}@example.com",
        "status": "active",
    }


@app.post("/api/calculate")
async def calculate(request: Request):
    try:
        payload = request.json()
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not isinstance(payload, dict):
        raise HTTPException(400, "Expected a JSON object")

    operation = payload.get("operation", "add")
    if operation not in OPERATIONS:
        raise HTTPException(
            400, f"Unknown operation '{operation}'. Use one of: {', '.join(OPERATIONS)}"
        )
    a, b = payload.get("a"), payload.get("b")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (a, b)):
        raise HTTPException(400, "Fields 'a' and 'b' must be numbers")
    if operation == "divide" and b == 0:
        raise HTTPException(400, "Division by zero")

    return {
        "a": a,
        "b": b,
        "operation": operation,
        "result": OPERATIONS[operation](a, b),
        "timestamp": int(time.time()),
    }


def main():
    print("=" * 70)
    print("RELAYASGI BASIC SERVER")
    print("=" * 70)
    print(f"Server running at http://{config.host}:{config.port}")
    print("Available endpoints:")
    print("  GET  /                - Homepage")
    print("  GET  /hello/{name}    - Personalised greeting")
    print("  GET  /api/status      - Server status")
    print("  POST /api/echo        - Echo request body")
    print("  GET  /api/time        - Server time")
    print("  GET  /users/{id}      - Sample user")
    print("  POST /api/calculate   - Calculator (JSON: a, b, operation)")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 70)
    app.serve()


if __name__ == "__main__":
    main()
