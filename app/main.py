import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.v1.endpoints import validate_keys_endpoints
from app.api_keys.exceptions import InvalidKeyRequestError
from app.api_keys.service import reset_key_validation_service
from app.core.logging_setup import configure_logging
from app.core.settings import settings
from app.db.session import close_database_manager

configure_logging(production=settings.is_production_mode())

# FastAPI instance
app = FastAPI(
    title="Gemini Key Validator",
    version="1.0",
    description="Detects Gemini API keys in pasted text, validates them and keeps the results."
)

# Add SlowAPI middleware for rate limiting
app.state.limiter = validate_keys_endpoints.limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(validate_keys_endpoints.router, prefix="/api/v1", tags=["Key Validation"])


@app.on_event("startup")
async def startup_event():
    """Log the effective configuration on application startup."""
    logging.info("=== Gemini Key Validator Configuration ===")
    logging.info(f"Production Mode: {settings.is_production_mode()}")
    logging.info(f"Models URL: {settings.gemini_models_url}")
    logging.info(
        "Key Pattern: prefix=%s min_length=%s max_length=%s",
        settings.key_prefix,
        settings.key_min_length,
        settings.key_max_length if settings.key_max_length is not None else "unbounded",
    )
    logging.info(f"Batch Size: {settings.batch_size}")
    logging.info(f"Rate Limiting: {'ENABLED' if settings.rate_limit_enabled else 'DISABLED'}")
    logging.info("==========================================")


@app.on_event("shutdown")
async def shutdown_event():
    """Release the database engine on application shutdown."""
    reset_key_validation_service()
    close_database_manager()
    logging.info("Database engine disposed")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """
    Global handler for SlowAPI rate limit exceeded errors.
    Provides user-friendly feedback with proper HTTP status.
    """
    client_host = request.client.host if request.client else "unknown"
    logging.warning(f"Rate limit exceeded for {client_host}: {exc.detail}")

    response = JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please try again later.",
            "detail": str(exc.detail),
        },
    )
    response.headers["Retry-After"] = "60"
    return response


@app.exception_handler(InvalidKeyRequestError)
async def invalid_key_request_handler(request: Request, exc: InvalidKeyRequestError):
    """Malformed validate-keys bodies are a client error."""
    logging.info(f"Rejected malformed request to {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=exc.to_dict())


# Global exception handler for sanitizing error messages
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catches any unhandled exceptions and returns a generic 500 error response.
    This prevents sensitive application details from leaking in production.
    """
    # Log the full error for internal debugging
    logging.error(f"Unhandled exception for request {request.url}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected internal server error occurred."},
    )


@app.get("/", tags=["General"])
async def read_root():
    """Root endpoint, returns a welcome message."""
    return {"message": "Welcome to the Gemini Key Validator API"}


@app.get("/health", tags=["General"])
async def health_check():
    """Health check endpoint for monitoring and connectivity testing."""
    return {
        "status": "healthy",
        "service": "gemini-key-validator",
        "version": "1.0"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
