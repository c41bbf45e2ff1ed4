from __future__ import annotations

import logging
import os
import time

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from . import settings  # noqa: E402  (settings read the environment at import)
from .routers import auth, vault, works  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()

app = FastAPI(title="Folio API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth.router)
app.include_router(works.router)
app.include_router(vault.router)


@app.get("/health", tags=["System"])
def health() -> dict[str, object]:
    return {"status": "ok", "uptime_s": round(time.monotonic() - _STARTED_AT, 3)}
