# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from services.errors import LedgerError

# Import routerów
from routes.logs import router as logs_router
from routes.products import router as products_router
from routes.warehouse import router as warehouse_router
from routes.stock import router as stock_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Stock Ledger API", version="1.0.0", lifespan=lifespan)

# CORS: local frontends plus the deployed one, if configured
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.as_dict()}),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder({
            "error": {
                "kind": "VALIDATION_ERROR",
                "message": "Invalid request",
                "data": {"errors": exc.errors()},
            }
        }),
    )


# Rejestracja routerów
app.include_router(logs_router)
app.include_router(products_router)
app.include_router(warehouse_router)
app.include_router(stock_router, prefix="/stock")


@app.get("/health")
def health():
    return {"status": "ok"}
