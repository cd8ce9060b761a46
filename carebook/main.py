from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime, timezone
import logging

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .dependencies import get_document_store
from .exceptions import CareBookError, carebook_exception_handler, http_exception_handler
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, SecurityMiddleware
from .routers import appointments_router, notifications_router, prescriptions_router, reviews_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME} with '{settings.STORE_BACKEND}' document store...")
    app.state.store_init_ok = True
    app.state.store_init_error = None
    if settings.STORE_BACKEND.lower() == "sql":
        try:
            from .persistence.database import create_db_and_tables
            create_db_and_tables()
            logger.info("Database initialized successfully")
        except Exception as e:
            # Do not crash the app; report via health endpoint
            app.state.store_init_ok = False
            app.state.store_init_error = str(e)
            logger.exception("Database initialization failed")
    yield
    # Shutdown
    store = get_document_store()
    if hasattr(store, "close"):
        store.close()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(CareBookError, carebook_exception_handler)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router.router)
app.include_router(notifications_router.router)
app.include_router(reviews_router.router)
app.include_router(prescriptions_router.router)
app.include_router(prescriptions_router.patients_router)


@app.get("/health")
def health_check():
    return {
        "status": "healthy" if getattr(app.state, "store_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "store_backend": settings.STORE_BACKEND,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error": getattr(app.state, "store_init_error", None),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("carebook.main:app", host=settings.HOST, port=settings.PORT)
