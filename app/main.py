"""
Main application entry point.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.api.responses import bad_request, server_error
from app.core.config import settings, print_config_info
from app.core.errors import DispatchError
from app.db.mongodb import mongodb

# Import API routers
from app.api.requests.router import router as requests_router
from app.api.kitchens.router import router as kitchens_router
from app.api.canisters.router import router as canisters_router
from app.api.users.router import router as users_router

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Setup CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DispatchError)
async def dispatch_exception_handler(request: Request, exc: DispatchError):
    """Rejected input and missing records."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return bad_request(exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads use the same envelope as other rejected input."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"Invalid parameter {field}: {first.get('msg')}" if field else "Missing required parameters"
    return bad_request(message)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return server_error(f"Internal server error: {str(exc)}")


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Event triggered on application startup."""
    print_config_info()

    mongodb.connect_to_mongodb()
    await mongodb.ensure_indexes()

    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Event triggered on application shutdown."""
    # Close MongoDB connection
    await mongodb.close_mongodb_connection()

    logger.info("Application shutdown")


# Include API routers
app.include_router(requests_router, prefix=f"{settings.API_V1_STR}/requests", tags=["requests"])
app.include_router(kitchens_router, prefix=f"{settings.API_V1_STR}/kitchens", tags=["kitchens"])
app.include_router(canisters_router, prefix=f"{settings.API_V1_STR}/canisters", tags=["canisters"])
app.include_router(users_router, prefix=f"{settings.API_V1_STR}/users", tags=["users"])


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}
