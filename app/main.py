# app/main.py

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.endpoints import admin, appointments, table_config
from app.core.cache import close_redis_pool, init_redis_pool
from app.core.config import settings
from app.core.db import close_db, init_db
from app.core.exceptions import AppError
from app.engine.booking_form import BookingForm
from app.engine.store import DatabaseStore
from app.services import admin_session_service, appointment_service
from app.templates import templates

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, description=settings.DESCRIPTION)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(appointments.router, prefix=settings.API_V1_STR)
app.include_router(table_config.router, prefix=settings.API_V1_STR)
app.include_router(admin.router, prefix=settings.API_V1_STR)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map domain errors to their status code with a {message, errors} body"""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Request validation failed for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/")
async def index(request: Request):
    """Customer booking page"""
    return templates.TemplateResponse(
        request,
        "customer.html",
        {"values": {}, "errors": {}, "result": None,
         "min_date": appointment_service.earliest_booking_date().isoformat(),
         "slots": appointment_service.slot_times()},
    )


@app.post("/book")
async def book(request: Request):
    """Submit the booking form and render the outcome"""
    form = await request.form()
    values = {field: (form.get(field) or "") for field in BookingForm.FIELDS}

    result = await BookingForm(DatabaseStore()).submit(values)
    status_code = status.HTTP_201_CREATED if result.success else status.HTTP_400_BAD_REQUEST
    return templates.TemplateResponse(
        request,
        "customer.html",
        {"values": {} if result.success else values, "errors": result.errors, "result": result,
         "min_date": appointment_service.earliest_booking_date().isoformat(),
         "slots": appointment_service.slot_times()},
        status_code=status_code,
    )


@app.get("/admin")
async def admin_dashboard(request: Request):
    """Admin table; opens a fresh session rendered server side"""
    session_id = await admin_session_service.open_session()
    engine = admin_session_service.get_session(session_id)
    return templates.TemplateResponse(
        request,
        "admin.html",
        {"session_id": session_id, "view": engine.snapshot(), "api_prefix": settings.API_V1_STR},
    )


@app.on_event("startup")
async def startup_event():
    """Initialize database and cache"""
    start_time = time.time()
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")

    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}", exc_info=True)

    await init_redis_pool()

    elapsed = time.time() - start_time
    logger.info(f"Application startup completed in {elapsed:.2f} seconds")


@app.on_event("shutdown")
async def shutdown_event():
    admin_session_service.clear_sessions()
    await close_redis_pool()
    await close_db()
    logger.info("Application shutdown complete")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.RELOAD
    )
