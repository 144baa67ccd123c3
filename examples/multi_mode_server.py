"""
RelayASGI Multi-Mode Server Example

One application factory, three middleware stacks:

    basic   (port 3000) - request logging
    secure  (port 3001) - logging, security headers, HSTS, admin endpoints
    dev     (port 3002) - logging, CORS, debug endpoints

To run this application:
    python examples/multi_mode_server.py --mode=secure
"""

import argparse
import time
from dataclasses import dataclass

from relayasgi import AppConfig, RelayASGI, Request, RequestContext, html_response
from relayasgi.middleware import (
    CallNext,
    CORSMiddleware,
    RequestLoggerMiddleware,
    SecurityHeadersMiddleware,
)

SERVER_NAME = "RelayASGI Multi-Mode Server"
HSTS_VALUE = "max-age=31536000; includeSubDomains"


@dataclass(frozen=True)
class ModeSettings:
    name: str
    port: int
    security_headers: bool = False
    enhanced_security: bool = False
    cors: bool = False
    debug_endpoints: bool = False
    description: str = ""


MODES = {
    "basic": ModeSettings("basic", 3000, description="Request logging only"),
    "secure": ModeSettings(
        "secure",
        3001,
        security_headers=True,
        enhanced_security=True,
        description="Security headers, HSTS and admin endpoints",
    ),
    "dev": ModeSettings(
        "dev",
        3002,
        cors=True,
        debug_endpoints=True,
        description="CORS and debug endpoints",
    ),
}


async def strict_transport_security(context: RequestContext, call_next: CallNext) -> None:
    """Pins browsers to HTTPS for a year."""
    context.set_header("Strict-Transport-Security", HSTS_VALUE)
    await call_next()


def _home_page(settings: ModeSettings) -> str:
    extra = ""
    if settings.enhanced_security:
        extra = "<li><code>GET /health</code>, <code>GET /config</code>, <code>POST /upload</code>, <code>GET /admin</code></li>"
    elif settings.debug_endpoints:
        extra = "<li><code>GET /debug</code>, <code>GET /test</code></li>"
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{SERVER_NAME} ({settings.name})</title></head>
<body>
    <h1>{SERVER_NAME}</h1>
    <p>Mode: <strong>{settings.name}</strong> - {settings.description}</p>
    <ul>
        <li><code>GET /api/status</code></li>
        <li><code>POST /api/echo</code></li>
        <li><code>GET /users/{{id}}</code></li>
        {extra}
    </ul>
</body>
</html>
"""


def create_app(mode: str = "basic") -> RelayASGI:
    """
    Build the application for one mode.

    Raises:
        ValueError: If ``mode`` is not one of basic, secure or dev
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Choose from: {', '.join(MODES)}")
    settings = MODES[mode]

    app = RelayASGI(config=AppConfig.from_env(port=settings.port))
    app.state.mode = settings

    app.add_middleware(RequestLoggerMiddleware())
    if settings.security_headers:
        app.add_middleware(SecurityHeadersMiddleware())
        app.add_middleware(strict_transport_security)
    if settings.cors:
        app.add_middleware(CORSMiddleware())

    @app.get("/")
    async def home():
        return html_response(_home_page(settings))

    @app.get("/api/status")
    async def status():
        return {
            "server": SERVER_NAME,
            "mode": settings.name,
            "port": settings.port,
            "status": "healthy",
            "timestamp": int(time.time()),
            "features": {
                "logging": True,
                "security_headers": settings.security_headers,
                "cors": settings.cors,
                "enhanced_security": settings.enhanced_security,
                "debug_endpoints": settings.debug_endpoints,
            },
        }

    @app.post("/api/echo")
    async def echo(request: Request):
        return {
            "echo": request.text,
            "length": len(request.body),
            "method": request.method,
            "timestamp": int(time.time()),
            "server_mode": settings.name,
        }

    @app.get("/users/{user_id}")
    async def user(user_id: str):
        return {
            "id": user_id,
            "name": f"User {user_id}",
            "email": f"user{user_id}@example.com",
            "created_at": "2024-01-01T00:00:00Z",
            "server_mode": settings.name,
        }

    if settings.enhanced_security:
        _add_secure_routes(app)
    if settings.debug_endpoints:
        _add_dev_routes(app)

    return app


def _add_secure_routes(app: RelayASGI) -> None:
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "mode": "secure",
            "timestamp": int(time.time()),
            "security_features": {
                "headers_enabled": True,
                "xss_protection": True,
                "frame_options": True,
                "content_type_options": True,
            },
        }

    @app.get("/config")
    async def config():
        return {
            "server_mode": "secure",
            "security_headers": {
                "x_frame_options": "DENY",
                "x_content_type_options": "nosniff",
                "x_xss_protection": "1; mode=block",
                "strict_transport_security": HSTS_VALUE,
            },
            "features": {
                "enhanced_logging": True,
                "security_middleware": True,
                "admin_endpoints": True,
            },
        }

    @app.post("/upload")
    async def upload(request: Request):
        return {
            "message": "Upload received in secure mode",
            "size": len(request.body),
            "timestamp": int(time.time()),
            "security_validated": True,
            "mode": "secure",
        }

    @app.get("/admin")
    async def admin():
        return {
            "message": "Admin panel - Secure mode",
            "timestamp": int(time.time()),
            "security_level": "high",
            "features": {
                "user_management": True,
                "system_monitoring": True,
                "security_logs": True,
            },
        }


def _add_dev_routes(app: RelayASGI) -> None:
    @app.get("/debug")
    async def debug(request: Request):
        return {
            "message": "Debug information - Development mode",
            "timestamp": int(time.time()),
            "request_info": {
                "method": request.method,
                "path": request.path,
                "headers_count": len(request.headers),
            },
            "server_info": {
                "mode": "development",
                "cors_enabled": True,
                "debug_endpoints": True,
            },
        }

    @app.get("/test")
    async def test_endpoint():
        return {
            "message": "Test endpoint - Development mode",
            "timestamp": int(time.time()),
            "test_data": {
                "random_number": 42,
                "test_string": "Hello from test endpoint",
                "cors_enabled": True,
            },
            "note": "This endpoint is only available in development mode",
        }


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=SERVER_NAME)
    parser.add_argument(
        "--mode",
        choices=sorted(MODES),
        default="basic",
        help="middleware stack to run (default: basic)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app(args.mode)
    settings = app.state.mode

    print("=" * 70)
    print(f"RELAYASGI MULTI-MODE SERVER - {settings.name.upper()} MODE")
    print("=" * 70)
    print(f"Server running at http://{app.config.host}:{app.config.port}")
    print(f"Mode: {settings.description}")
    print("Common endpoints:")
    print("  GET  /              - Homepage")
    print("  GET  /api/status    - Server status and active features")
    print("  POST /api/echo      - Echo request body")
    print("  GET  /users/{id}    - Sample user")
    if settings.enhanced_security:
        print("Secure mode endpoints:")
        print("  GET  /health        - Health check")
        print("  GET  /config        - Security configuration")
        print("  POST /upload        - Upload endpoint")
        print("  GET  /admin         - Admin panel")
    if settings.debug_endpoints:
        print("Development mode endpoints:")
        print("  GET  /debug         - Request debug information")
        print("  GET  /test          - Test data")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 70)
    app.serve()


if __name__ == "__main__":
    main()
