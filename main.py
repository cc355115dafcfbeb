"""
FastAPI app: JSON endpoints over the Airfocus workspace/field/user API.

Decisions:
- .env is loaded before importing airfocus_access so AIRFOCUS_* settings are
  available when the router and its service pool are created (Ruff E402 suppressed).
- The Airfocus API key is never configured here; the browser sends it with every
  request and the router keeps one cache per key.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

# Load .env before airfocus_access so AIRFOCUS_* is set; Ruff E402.
from airfocus_access import create_api_router  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Airfocus Access Tools")
app.include_router(create_api_router())


@app.get("/")
async def home():
    return {"ok": True, "service": "airfocus-access"}
