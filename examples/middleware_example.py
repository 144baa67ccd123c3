"""
RelayASGI Middleware Example

Seven application middleware units plus one route-level unit:

    1. request timing        X-Response-Time
    2. request logger        (built-in)
    3. request id            X-Request-ID
    4. CORS                  (built-in)
    5. security headers      (built-in)
    6. request validation    rejects paths containing ".."
    7. response modification X-Powered-By, X-Middleware-Stack

    /auth-required additionally runs an authentication unit.

To run this application:
    python examples/middleware_example.py

Example requests:
    curl -i http://localhost:3000/api/timing
    curl -i http://localhost:3000/auth-required
    curl -i -H 'Authorization: Bearer demo' http://localhost:3000/auth-required
"""

import asyncio
import logging
import random
import time
import uuid

from relayasgi import (
    AppConfig,
    HTTPException,
    RelayASGI,
    Request,
    RequestContext,
    error_response,
    html_response,
)
from relayasgi.middleware import (
    CallNext,
    CORSMiddleware,
    RequestLoggerMiddleware,
    SecurityHeadersMiddleware,
)

logger = logging.getLogger("relayasgi.examples.middleware")

MIDDLEWARE_STACK = [
    "request-timing",
    "logger",
    "request-id",
    "cors",
    "security",
    "request-validation",
    "response-modification",
]

config = AppConfig.from_env(port=3000)
app = RelayASGI(config=config)


# Custom middleware


async def request_timing(context: RequestContext, call_next: CallNext) -> None:
    """Measures the whole downstream chain."""
    start = time.perf_counter()
    logger.info("[timing] started %s %s", context.request.method, context.request.path)
    await call_next()
    duration_ms = (time.perf_counter() - start) * 1000
    context.set_header("X-Response-Time", f"{duration_ms:.2f}ms")
    logger.info("[timing] completed in %.2fms", duration_ms)


async def request_id(context: RequestContext, call_next: CallNext) -> None:
    incoming = context.request.get_header("x-request-id")
    rid = incoming or f"req-{uuid.uuid4().hex[:12]}"
    context.state["request_id"] = rid
    context.set_header("X-Request-ID", rid)
    await call_next()


async def request_validation(context: RequestContext, call_next: CallNext) -> None:
    """Blocks path traversal attempts before any route runs."""
    request = context.request
    if ".." in request.path:
        logger.warning("[validation] blocked suspicious path %s", request.path)
        context.respond(error_response(400, "Invalid path"))
        return
    if request.method == "POST" and request.get_header("content-length") is None:
        logger.warning("[validation] POST request without content-length")
    await call_next()


async def response_modification(context: RequestContext, call_next: CallNext) -> None:
    await call_next()
    context.set_header("X-Powered-By", "RelayASGI")
    context.set_header("X-Middleware-Stack", ",".join(MIDDLEWARE_STACK))


async def authentication(context: RequestContext, call_next: CallNext) -> None:
    """Route-level unit: requires ``Authorization: Bearer <token>``."""
    auth = context.request.get_header("authorization")
    if auth is None:
        context.respond(
            error_response(
                401, "Authentication required", headers={"WWW-Authenticate": "Bearer"}
            )
        )
        return
    scheme, _, token = auth.partition(" ")
    if scheme != "Bearer" or not token:
        context.respond(
            error_response(
                401, "Invalid authorization format", headers={"WWW-Authenticate": "Bearer"}
            )
        )
        return
    context.state["token"] = token
    await call_next()


app.add_middleware(request_timing)
app.add_middleware(RequestLoggerMiddleware())
app.add_middleware(request_id)
app.add_middleware(CORSMiddleware())
app.add_middleware(SecurityHeadersMiddleware())
app.add_middleware(request_validation)
app.add_middleware(response_modification)


# Routes


@app.get("/")
async def home():
    items = "\n".join(f"        <li>{name}</li>" for name in MIDDLEWARE_STACK)
    return html_response(
        f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>RelayASGI Middleware Example</title></head>
<body>
    <h1>RelayASGI Middleware Example</h1>
    <p>Every request passes through these units, in order:</p>
    <ol>
{items}
    </ol>
    <p>Try <code>/auth-required</code> with and without an
    <code>Authorization: Bearer ...</code> header.</p>
</body>
</html>
"""
    )


@app.get("/api/middleware-info")
async def middleware_info():
    return {
        "server": "RelayASGI Middleware Example",
        "middleware_stack": {
            "total_count": len(MIDDLEWARE_STACK),
            "execution_order": MIDDLEWARE_STACK,
            "built_in": ["logger", "cors", "security"],
            "custom": [
                "request-timing",
                "request-id",
                "request-validation",
                "response-modification",
            ],
        },
        "headers_added": [
            "X-Response-Time",
            "X-Request-ID",
            "X-Powered-By",
            "X-Middleware-Stack",
        ],
        "timestamp": int(time.time()),
    }


@app.get("/api/timing")
async def timing_test(request: Request):
    delay_ms = int(request.get_query_param("delay", "100"))
    await asyncio.sleep(delay_ms / 1000)
    return {
        "message": "Timing test completed",
        "simulated_delay": f"{delay_ms}ms",
        "note": "Check X-Response-Time header for actual timing",
        "timestamp": int(time.time()),
    }


@app.post("/api/validated")
async def validated(request: Request):
    return {
        "message": "Request passed validation middleware",
        "body_received": request.text,
        "validation_status": "passed",
        "middleware_applied": "request-validation",
        "timestamp": int(time.time()),
    }


@app.get("/protected")
async def protected():
    return {
        "message": "This is protected content",
        "access_level": "public",
        "note": "Try /auth-required for authentication middleware demo",
        "timestamp": int(time.time()),
    }


@app.get("/auth-required", middleware=[authentication])
async def auth_required(context: RequestContext):
    return {
        "message": "Authentication successful!",
        "access_level": "authenticated",
        "middleware_applied": "authentication",
        "request_id": context.state.get("request_id"),
        "timestamp": int(time.time()),
    }


@app.get("/error-test")
async def error_test(request: Request):
    # ?fail=true|false forces the outcome, otherwise it is a coin toss
    fail = request.get_query_param("fail")
    should_fail = fail == "true" if fail is not None else random.random() < 0.5
    if should_fail:
        raise HTTPException(500, "Simulated error for testing")
    return {
        "message": "No error this time!",
        "note": "Refresh to potentially trigger an error",
        "error_simulation": "50% chance",
        "timestamp": int(time.time()),
    }


def main():
    print("=" * 70)
    print("RELAYASGI MIDDLEWARE EXAMPLE")
    print("=" * 70)
    print(f"Server running at http://{config.host}:{config.port}")
    print("Middleware stack (execution order):")
    for position, name in enumerate(MIDDLEWARE_STACK, 1):
        print(f"  {position}. {name}")
    print("Endpoints:")
    print("  GET  /                    - Homepage")
    print("  GET  /api/middleware-info - Middleware stack description")
    print("  GET  /api/timing          - Slow endpoint (?delay=ms)")
    print("  POST /api/validated       - Body echo after validation")
    print("  GET  /protected           - Public content")
    print("  GET  /auth-required       - Requires Authorization: Bearer <token>")
    print("  GET  /error-test          - Random 500 (?fail=true|false)")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 70)
    app.serve()


if __name__ == "__main__":
    main()
