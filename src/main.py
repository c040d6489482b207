from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.config import settings
from src.database import Database
from src.exceptions import DomainException
from src.logger import logger, setup_logging
from src.availability import router as availability_router
from src.bookings import router as bookings_router
from src.coupons import router as coupons_router
from src.payments import router as payments_router

def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the API; tests pass their own storage handle"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        db = database or Database()
        db.create_all()
        app.state.database = db
        logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
        yield
        db.dispose()

    # Create FastAPI app
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Food cart event booking API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": jsonable_encoder(exc.to_dict())})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {
                "message": "Invalid request",
                "code": "INVALID_REQUEST",
                "details": {"errors": jsonable_encoder(exc.errors())}
            }}
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": {"message": "Internal server error", "code": "INTERNAL_ERROR", "details": {}}}
        )

    # Include routers
    app.include_router(
        availability_router,
        prefix=f"{settings.API_V1_STR}/availability",
        tags=["Availability"]
    )

    app.include_router(
        bookings_router,
        prefix=f"{settings.API_V1_STR}/bookings",
        tags=["Bookings"]
    )

    app.include_router(
        coupons_router,
        prefix=f"{settings.API_V1_STR}/coupons",
        tags=["Coupons"]
    )

    app.include_router(
        payments_router,
        prefix=f"{settings.API_V1_STR}/payments",
        tags=["Payments"]
    )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get(f"{settings.API_V1_STR}/health")
    @app.get("/health")
    def health_check(request: Request):
        """Health check endpoint, including a storage round trip"""
        try:
            with request.app.state.database.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Health check could not reach the database: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "unreachable"}
            )
        return {"status": "healthy", "database": "ok"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
