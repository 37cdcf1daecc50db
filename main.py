import time
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from config import Settings, get_settings
from contact_service import ClientMetadata, ContactIntakeService
from database import MessageStore, ProjectStore
from errors import (NotFoundError, PortfolioError, StorageUnavailableError,
                    UpstreamFetchError)
from logging_config import configure_logging, get_logger
from notifications import NotificationDispatcher
from projects import get_project_source
from schemas import ContactRequest, ProjectOut, StatusUpdate

settings = get_settings()
configure_logging(settings)
logger = get_logger("portfolio")

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "GET /api/status",
    "GET /api/projects",
    "POST /api/contact",
    "GET /api/contact",
    "GET /api/contact/stats",
    "GET /api/contact/{id}",
    "PATCH /api/contact/{id}/status",
    "DELETE /api/contact/{id}",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    client, db = database.connect(settings)
    http_client = httpx.Client(timeout=settings.github_timeout)
    project_store = ProjectStore(db)

    app.state.started_at = time.monotonic()
    app.state.message_store = MessageStore(db)
    app.state.dispatcher = NotificationDispatcher(settings)
    app.state.project_source = get_project_source(settings, project_store, client=http_client)

    logger.info("%s v%s started (%s)", settings.app_name, settings.app_version, settings.app_env)
    try:
        yield
    finally:
        http_client.close()
        database.close(client)


app = FastAPI(title="Portfolio Backend API", version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins_list,
    allow_origin_regex=settings.allowed_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(
        "%s %s (origin: %s)",
        request.method, request.url.path, request.headers.get("origin", "no origin header"),
    )
    return await call_next(request)


# -----------------------------
# Dependencies
# -----------------------------

def get_app_settings() -> Settings:
    return settings


def get_message_store(request: Request) -> MessageStore:
    return request.app.state.message_store


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_contact_service(
    store: MessageStore = Depends(get_message_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ContactIntakeService:
    return ContactIntakeService(store, dispatcher)


def get_projects_source(request: Request):
    return request.app.state.project_source


def get_client_metadata(request: Request) -> ClientMetadata:
    ip = None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    if not ip:
        ip = request.headers.get("x-real-ip")
    if not ip and request.client:
        ip = request.client.host
    return ClientMetadata(
        ip_address=ip or "Unknown",
        user_agent=request.headers.get("user-agent") or "Unknown",
    )


# -----------------------------
# Error handlers
# -----------------------------

def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@app.exception_handler(PortfolioError)
async def portfolio_error_handler(request: Request, exc: PortfolioError):
    if isinstance(exc, UpstreamFetchError):
        return error_response(exc.status_code, "Failed to fetch projects from GitHub", error=exc.message)
    if isinstance(exc, StorageUnavailableError):
        logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, "Database temporarily unavailable")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return error_response(400, ", ".join(errors) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(
            404, "Route not found", path=request.url.path, available_endpoints=AVAILABLE_ENDPOINTS
        )
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Server error on %s %s", request.method, request.url.path)
    message = "Failed to process request. Please try again later"
    if settings.contact_fallback_email:
        message += f" or contact me directly at {settings.contact_fallback_email}"
    extra = {"error": str(exc)} if settings.is_development else {}
    return error_response(500, message, **extra)


# -----------------------------
# Base routes
# -----------------------------

@app.get("/")
def read_root(config: Settings = Depends(get_app_settings)):
    return {
        "active_status": True,
        "message": "Portfolio Backend Active",
        "version": config.app_version,
        "features": [
            "Project Listing",
            "Contact Forms",
            "Message Statistics",
            "Email Notifications",
        ],
        "projects_source": config.projects_source,
        "environment": config.app_env,
        "allowed_origins": config.origins_list + (
            [config.allowed_origin_regex] if config.allowed_origin_regex else []
        ),
        "timestamp": database.utcnow(),
    }


@app.get("/health")
def health(request: Request, store: MessageStore = Depends(get_message_store)):
    started_at = getattr(request.app.state, "started_at", None)
    return {
        "status": "Server is running",
        "database": "connected" if store.ping() else "disconnected",
        "uptime": round(time.monotonic() - started_at, 3) if started_at is not None else 0,
        "timestamp": database.utcnow(),
    }


@app.get("/api/status")
def api_status(store: MessageStore = Depends(get_message_store)):
    return {
        "server": "Operational",
        "database": "Connected" if store.ping() else "Disconnected",
        "last_checked": database.utcnow(),
        "endpoints": {
            "projects": "/api/projects",
            "contact": "/api/contact",
            "health": "/health",
        },
    }


# -----------------------------
# Project Endpoints
# -----------------------------

@app.get("/api/projects", response_model=List[ProjectOut])
def list_projects(source=Depends(get_projects_source)):
    return source.list_projects()


# -----------------------------
# Contact Endpoints
# -----------------------------

@app.post("/api/contact", status_code=201)
def submit_contact(
    background_tasks: BackgroundTasks,
    payload: Optional[ContactRequest] = None,
    client: ClientMetadata = Depends(get_client_metadata),
    service: ContactIntakeService = Depends(get_contact_service),
):
    raw = (payload or ContactRequest()).model_dump()
    result = service.submit(raw, client, schedule=background_tasks.add_task)
    if not result.stored:
        return {
            "success": True,
            "message": "Thank you! Your message has been received (database temporarily unavailable).",
        }
    return {
        "success": True,
        "message": "Thank you! Your message has been sent successfully. I'll get back to you soon.",
        "data": {"id": result.id, "timestamp": result.timestamp},
    }


@app.get("/api/contact")
def list_messages(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    sort: str = "-created_at",
    service: ContactIntakeService = Depends(get_contact_service),
):
    listing = service.list_messages(status=status, page=page, limit=limit, sort=sort)
    return {"success": True, **listing}


@app.get("/api/contact/stats")
def message_stats(service: ContactIntakeService = Depends(get_contact_service)):
    return {"success": True, "data": service.stats()}


@app.get("/api/contact/{message_id}")
def get_message(message_id: str, service: ContactIntakeService = Depends(get_contact_service)):
    return {"success": True, "data": service.get_message(message_id)}


@app.patch("/api/contact/{message_id}/status")
def update_message_status(
    message_id: str,
    payload: StatusUpdate,
    service: ContactIntakeService = Depends(get_contact_service),
):
    message = service.update_status(message_id, payload.status)
    return {"success": True, "data": message, "message": f"Message marked as {payload.status}"}


@app.delete("/api/contact/{message_id}")
def delete_message(message_id: str, service: ContactIntakeService = Depends(get_contact_service)):
    service.delete_message(message_id)
    return {"success": True, "message": "Message deleted successfully"}


# -----------------------------
# Admin Endpoints
# -----------------------------

def require_admin_routes(config: Settings = Depends(get_app_settings)) -> None:
    if not config.enable_admin_routes:
        raise NotFoundError("Route not found")


@app.get("/api/admin/dashboard", dependencies=[Depends(require_admin_routes)])
def admin_dashboard(service: ContactIntakeService = Depends(get_contact_service)):
    return {"success": True, "data": service.dashboard()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
