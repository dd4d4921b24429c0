"""
Main FastAPI application
Users, quizzes and quiz enrollment over a document store
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import logging
import time
import traceback

from app.config import settings
from app.errors import AppError
from app.api import users, quizzes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="REST API for users, quizzes and quiz enrollment",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, exc: Exception) -> dict:
    body = {"error": message}
    if settings.DEBUG:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""

    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


# Domain error handler
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map domain errors (e.g. not found) to their HTTP status"""

    logger.warning(f"ERROR req {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc)
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject invalid payloads with 400 and a readable message"""

    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    message = "; ".join(messages) or "Invalid request"

    logger.info(f"Validation failed for {request.url.path}: {message}")

    return JSONResponse(status_code=400, content={"error": message})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors, including store failures"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    message = str(exc) if settings.DEBUG else "An unexpected error occurred. Please try again later."
    return JSONResponse(
        status_code=500,
        content=_error_body(message, exc)
    )


# Liveness endpoint
@app.get("/", response_class=PlainTextResponse)
def root():
    return "alive"


# Health check endpoint
@app.get("/health")
def health_check():
    """Service status for monitoring"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


# Include routers
app.include_router(users.router)
app.include_router(quizzes.router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Prepare the document store on startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if settings.STORE_BACKEND.lower() == "sql":
        from app.database import init_db
        try:
            init_db()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            raise

    logger.info("Application startup complete")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down application")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
