import logging
import math
import os
import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import psycopg2
from dotenv import load_dotenv

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

from backend import app_context
from backend.app.routes.invoices import router as invoices_router
from backend.app.routes.notifications import router as notifications_router


load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("billing")


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


DB_CFG = dict(
    host=os.getenv("DB_HOST", "127.0.0.1"),
    port=int(os.getenv("DB_PORT", "5432")),
    dbname=os.getenv("DB_NAME", "isp_billing"),
    user=os.getenv("DB_USER", "billing"),
    password=os.getenv("DB_PASSWORD", "billing"),
    connect_timeout=_parse_connect_timeout(os.getenv("DB_CONNECT_TIMEOUT", "5")),
)


def get_conn():
    return psycopg2.connect(**DB_CFG)


app_context.configure(get_conn=get_conn)

app = FastAPI(title="ISP Billing API")

_cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
if _cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(invoices_router)
app.include_router(notifications_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


logger.info("Billing API configured", extra={"db_host": DB_CFG["host"], "db_name": DB_CFG["dbname"]})
