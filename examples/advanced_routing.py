"""
RelayASGI Advanced Routing Example

Demonstrates:
- Typed and nested path parameters
- Query parameters (search, pagination)
- Catch-all ``{name:path}`` parameters for /static and /docs
- Upload endpoints with content-type validation
- Route-level middleware: /protected (auth) and /admin (auth + admin)
- API versioning with included routers
- JSON, form and XML request bodies

To run this application:
    python examples/advanced_routing.py

Example requests:
    curl http://localhost:3000/users/42/posts/7
    curl 'http://localhost:3000/search?q=zig&category=books'
    curl http://localhost:3000/static/css/site.css
    curl -H 'Authorization: Bearer valid-token-123' http://localhost:3000/protected
    curl -H 'Authorization: Bearer admin-token-456' http://localhost:3000/admin
"""

import time
import xml.etree.ElementTree as ElementTree
from typing import Dict

from relayasgi import (
    APIRouter,
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

# token -> user
TOKENS: Dict[str, Dict[str, object]] = {
    "valid-token-123": {"id": 123, "username": "demo_user", "role": "user"},
    "admin-token-456": {"id": 1, "username": "admin", "role": "admin"},
}

MIME_TYPES = {
    ".css": "text/css",
    ".js": "application/javascript",
    ".html": "text/html",
    ".json": "application/json",
    ".png": "image/png",
}

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]
ALLOWED_DOCUMENT_TYPES = ["application/pdf", "text/plain", "application/msword"]

config = AppConfig.from_env(port=3000)
app = RelayASGI(config=config)
app.add_middleware(RequestLoggerMiddleware())
app.add_middleware(CORSMiddleware())


# Route middleware


async def require_auth(context: RequestContext, call_next: CallNext) -> None:
    """Resolves the bearer token to a user, or responds 401."""
    auth = context.request.get_header("authorization")
    if auth is None:
        context.respond(error_response(401, "Authentication required"))
        return
    if not auth.startswith("Bearer "):
        context.respond(error_response(401, "Invalid authorization format"))
        return
    user = TOKENS.get(auth[len("Bearer "):])
    if user is None:
        context.respond(error_response(401, "Invalid token"))
        return
    context.state["user"] = user
    await call_next()


async def require_admin(context: RequestContext, call_next: CallNext) -> None:
    # Runs after require_auth
    user = context.state.get("user")
    if user is None or user["role"] != "admin":
        context.respond(error_response(403, "Admin access required"))
        return
    await call_next()


# Home and info


@app.get("/")
async def home():
    return html_response(
        """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>RelayASGI Advanced Routing</title></head>
<body>
    <h1>RelayASGI Advanced Routing</h1>
    <ul>
        <li><code>/users/{id}</code>, <code>/users/{id}/posts/{post_id}</code></li>
        <li><code>/categories/{category}/items/{item}</code></li>
        <li><code>/search?q=...</code>, <code>/api/paginated?page=1&amp;limit=10</code></li>
        <li><code>/static/{path}</code>, <code>/docs/{path}</code></li>
        <li><code>POST /upload</code>, <code>/upload/image</code>, <code>/upload/document</code></li>
        <li><code>POST /auth/login</code>, <code>/auth/register</code></li>
        <li><code>/protected</code>, <code>/admin</code></li>
        <li><code>/api/v1/status</code>, <code>/api/v2/status</code></li>
        <li><code>POST /api/json</code>, <code>/api/form</code>, <code>/api/xml</code></li>
    </ul>
</body>
</html>
"""
    )


@app.get("/api/info")
async def info():
    return {
        "server": "RelayASGI Advanced Routing Example",
        "features": {
            "parameter_routes": True,
            "path_parameters": True,
            "query_parameters": True,
            "file_upload": True,
            "authentication": True,
            "middleware_chaining": True,
            "api_versioning": True,
        },
        "route_count": len(app.api_router.routes),
        "timestamp": int(time.time()),
    }


# Path parameters


@app.get("/users/{user_id:int}")
async def user(user_id: int):
    return {
        "id": user_id,
        "name": f"User {user_id}",
        "email": f"user{user_id}@example.com",
        "profile": {
            "bio": "Sample user profile",
            "location": "Python Land",
            "joined": "2024-01-01",
        },
        "route_info": {"pattern": "/users/{user_id:int}", "parameter_extracted": user_id},
    }


@app.get("/users/{user_id:int}/posts/{post_id:int}")
async def user_post(user_id: int, post_id: int):
    return {
        "id": post_id,
        "user_id": user_id,
        "title": f"Post {post_id} by User {user_id}",
        "content": "This is a sample post content",
        "created_at": "2024-01-01T00:00:00Z",
        "route_info": {
            "pattern": "/users/{user_id:int}/posts/{post_id:int}",
            "parameters": {"user_id": user_id, "post_id": post_id},
        },
    }


@app.get("/categories/{category}/items/{item}")
async def category_item(category: str, item: str):
    return {
        "category": category,
        "item": item,
        "name": f"{item} in {category}",
        "description": "Sample item description",
        "price": 99.99,
        "route_info": {
            "pattern": "/categories/{category}/items/{item}",
            "parameters": {"category": category, "item": item},
        },
    }


# Query parameters


@app.get("/search")
async def search(request: Request):
    query = request.get_query_param("q", "")
    category = request.get_query_param("category", "all")
    page = _positive_int(request.get_query_param("page"), 1)
    return {
        "query": query,
        "category": category,
        "page": page,
        "tags": request.get_query_params("tag"),
        "results": {
            "total": 42,
            "items": [
                {"id": 1, "title": "Result 1", "relevance": 0.95},
                {"id": 2, "title": "Result 2", "relevance": 0.87},
                {"id": 3, "title": "Result 3", "relevance": 0.76},
            ],
        },
    }


@app.get("/api/paginated")
async def paginated(request: Request):
    page = _positive_int(request.get_query_param("page"), 1)
    limit = _positive_int(request.get_query_param("limit"), 10)
    total_items = 100
    return {
        "page": page,
        "limit": limit,
        "total_pages": -(-total_items // limit),
        "total_items": total_items,
        "data": {
            "start_index": (page - 1) * limit + 1,
            "end_index": min(page * limit, total_items),
        },
    }


def _positive_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


# Catch-all paths


@app.get("/static/{file_path:path}")
async def static_file(request: Request, file_path: str):
    extension = file_path[file_path.rfind("."):] if "." in file_path else ""
    return {
        "message": "Static file request",
        "requested_path": request.path,
        "file_path": file_path,
        "mime_type": MIME_TYPES.get(extension, "application/octet-stream"),
        "note": "In a real app, this would serve actual static files",
    }


@app.get("/docs/{doc_path:path}")
async def documentation(request: Request, doc_path: str):
    return {
        "message": "Documentation request",
        "requested_path": request.path,
        "doc_path": doc_path,
        "content": f"This would contain documentation content for: {doc_path}",
    }


# Uploads


@app.post("/upload")
async def upload(request: Request):
    return {
        "message": "File upload received",
        "size": len(request.body),
        "content_type": request.content_type or "unknown",
        "upload_type": "general",
        "timestamp": int(time.time()),
    }


@app.post("/upload/image")
async def upload_image(request: Request):
    content_type = request.content_type or "unknown"
    is_image = content_type.split(";")[0].strip() in ALLOWED_IMAGE_TYPES
    if request.body and not is_image:
        raise HTTPException(400, "Only image files are allowed")
    return {
        "message": "Image upload received",
        "size": len(request.body),
        "content_type": content_type,
        "validation": {
            "is_image": is_image,
            "max_size": "5MB",
            "allowed_types": ALLOWED_IMAGE_TYPES,
        },
    }


@app.post("/upload/document")
async def upload_document(request: Request):
    content_type = request.content_type or "unknown"
    if request.body and content_type.split(";")[0].strip() not in ALLOWED_DOCUMENT_TYPES:
        raise HTTPException(400, "Unsupported document type")
    return {
        "message": "Document upload received",
        "size": len(request.body),
        "content_type": content_type,
        "validation": {"max_size": "10MB", "allowed_types": ALLOWED_DOCUMENT_TYPES},
    }


# Authentication


@app.post("/auth/login")
async def login(request: Request):
    credentials = request.json() if request.is_json() and request.body else {}
    admin = credentials.get("username") == "admin"
    token = "admin-token-456" if admin else "valid-token-123"
    return {
        "message": "Login successful",
        "token": token,
        "expires_in": 3600,
        "user": TOKENS[token],
        "note": f"Use this token in Authorization header: Bearer {token}",
    }


@app.post("/auth/register")
async def register(request: Request):
    try:
        payload = request.json()
    except ValueError as e:
        raise HTTPException(400, str(e))
    username = payload.get("username") if isinstance(payload, dict) else None
    if not username:
        raise HTTPException(400, "Field 'username' is required")
    return json_response(
        {
            "message": "Registration successful",
            "user_id": 124,
            "username": username,
            "status": "active",
            "created_at": int(time.time()),
        },
        status_code=201,
    )


@app.get("/protected", middleware=[require_auth])
async def protected(context: RequestContext):
    user = context.state["user"]
    return {
        "message": "Access granted to protected resource",
        "user_id": user["id"],
        "user_role": user["role"],
        "protected_data": {"secret": "This is protected information", "level": "user"},
        "middleware_applied": ["auth"],
    }


@app.get("/admin", middleware=[require_auth, require_admin])
async def admin(context: RequestContext):
    user = context.state["user"]
    return {
        "message": "Admin access granted",
        "user_id": user["id"],
        "user_role": user["role"],
        "admin_data": {
            "system_stats": {"uptime": "24h", "memory_usage": "45%", "active_connections": 12},
            "permissions": ["read", "write", "delete", "admin"],
        },
        "middleware_applied": ["auth", "admin"],
    }


# API versions

v1 = APIRouter()
v2 = APIRouter()


@v1.get("/status")
async def v1_status():
    return {
        "api_version": "1.0",
        "status": "deprecated",
        "message": "API v1 is deprecated, please use v2",
        "deprecation_date": "2024-12-31",
        "migration_guide": "/docs/api/v1-to-v2-migration",
    }


@v2.get("/status")
async def v2_status():
    return {
        "api_version": "2.0",
        "status": "active",
        "message": "API v2 is the current stable version",
        "features": {
            "enhanced_security": True,
            "better_performance": True,
            "improved_error_handling": True,
        },
        "documentation": "/docs/api/v2",
    }


app.include_router(v1, prefix="/api/v1")
app.include_router(v2, prefix="/api/v2")


# Body formats


@app.post("/api/json")
async def json_body(request: Request):
    if not request.is_json():
        raise HTTPException(400, "Expected JSON content type")
    try:
        data = request.json()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {
        "message": "JSON data received",
        "content_type": request.content_type,
        "body_length": len(request.body),
        "parsed_data": data,
    }


@app.post("/api/form")
async def form_body(request: Request):
    if not request.is_form():
        raise HTTPException(400, "Expected form content type")
    return {
        "message": "Form data received",
        "content_type": request.content_type,
        "body_length": len(request.body),
        "fields": request.form(),
    }


@app.post("/api/xml")
async def xml_body(request: Request):
    content_type = (request.content_type or "").lower()
    if not content_type.startswith(("application/xml", "text/xml")):
        raise HTTPException(400, "Expected XML content type")
    try:
        root = ElementTree.fromstring(request.body)
    except ElementTree.ParseError as e:
        raise HTTPException(400, f"Invalid XML: {e}")
    return {
        "message": "XML data received",
        "content_type": request.content_type,
        "body_length": len(request.body),
        "root_element": root.tag,
        "children": [child.tag for child in root],
    }


def main():
    print("=" * 70)
    print("RELAYASGI ADVANCED ROUTING EXAMPLE")
    print("=" * 70)
    print(f"Server running at http://{config.host}:{config.port}")
    print(f"Registered routes: {len(app.api_router.routes)}")
    for route in app.api_router.routes:
        print(f"  {route!r}")
    print("\nDemo tokens: valid-token-123 (user), admin-token-456 (admin)")
    print("Press Ctrl+C to stop the server")
    print("=" * 70)
    app.serve()


if __name__ == "__main__":
    main()
