import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import StoreUnavailable
from backend.database import Database
from backend.routes import auth_routes, request_routes
from backend.services.notifications import LoggingNotifier
from backend.services.queue_estimator import QueueEstimator

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.state.database = Database(config.DATABASE_URL, echo=config.SQL_ECHO)
app.state.notifier = LoggingNotifier()
app.state.estimator = QueueEstimator()


@app.on_event('startup')
def initialize_database() -> None:
    try:
        app.state.database.connect()
        app.state.database.create_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('shutdown')
def close_database() -> None:
    app.state.database.close()


@app.exception_handler(StoreUnavailable)
def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error('Store unavailable while handling %s %s: %s', request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={'detail': 'Database unavailable. Verify DATABASE_URL and database credentials.'},
    )


@app.get('/')
def root():
    return {'status': 'Student Request Tracker API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(request_routes.router, prefix='/requests')
