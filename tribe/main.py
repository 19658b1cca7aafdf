import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from tribe.config import settings
from tribe.modules.auth import routes as auth_routes
from tribe.modules.profiles import routes as profiles_routes
from tribe.modules.trees import routes as trees_routes
from tribe.modules.branches import routes as branches_routes
from tribe.modules.roles import routes as roles_routes
from tribe.modules.leaves import routes as leaves_routes
from tribe.modules.chat import routes as chat_routes
from tribe.modules.assistant import routes as assistant_routes
from tribe.modules.invitations import routes as invitations_routes
from tribe.modules.notifications import routes as notifications_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(trees_routes.router, prefix="/api/v1")
app.include_router(branches_routes.router, prefix="/api/v1")
app.include_router(roles_routes.router, prefix="/api/v1")
app.include_router(leaves_routes.router, prefix="/api/v1")
app.include_router(chat_routes.router, prefix="/api/v1")
app.include_router(assistant_routes.router, prefix="/api/v1")
app.include_router(invitations_routes.router, prefix="/api/v1")
app.include_router(notifications_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info(f"{settings.app_name} startup (environment={settings.environment})")
    if not settings.resolved_llm_api_key:
        logger.warning("No LLM API key configured; the assistant will answer with placeholder responses")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
@limiter.exempt
async def root():
    return {"message": "Welcome to tribe-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: reports whether Supabase is configured."""
    if not settings.supabase_url or not settings.supabase_key:
        return JSONResponse(status_code=503, content={"status": "not ready", "detail": "Supabase is not configured"})
    return {"status": "ready"}
