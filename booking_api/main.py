import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_api.core import config
from booking_api.core.exceptions import BookingError, InternalError, MethodNotAllowedError
from booking_api.database import engine, ensure_appointment_schema
from booking_api.models import appointment
from booking_api.routes import appointment_routes

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(title='Riding School Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_methods=config.CORS_ALLOW_METHODS,
    allow_headers=config.CORS_ALLOW_HEADERS,
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'error': message}, headers=headers)


@app.exception_handler(BookingError)
def handle_booking_error(request: Request, exc: BookingError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return error_response(400, 'invalid request body')

    first = errors[0]
    location = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
    message = first.get('msg', 'invalid value')
    if location:
        message = f'{location}: {message}'
    return error_response(400, f'invalid request body: {message}')


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = getattr(exc, 'headers', None)
    if exc.status_code == MethodNotAllowedError.status_code:
        return error_response(exc.status_code, MethodNotAllowedError().message, headers)
    return error_response(exc.status_code, str(exc.detail).lower(), headers)


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s.', request.method, request.url.path)
    return error_response(InternalError.status_code, f'server error: {exc}')


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        appointment.Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Riding School Booking API Running'}


app.include_router(appointment_routes.router, prefix='/appointments')
