import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from equilibra.app.api.routes.accounts import router as accounts_router
from equilibra.app.api.routes.dashboard import router as dashboard_router
from equilibra.app.api.routes.demo import router as demo_router
from equilibra.app.api.routes.goals import router as goals_router
from equilibra.app.api.routes.insights import router as insights_router
from equilibra.app.api.routes.offers import router as offers_router
from equilibra.app.api.routes.transactions import router as transactions_router


logger = logging.getLogger(__name__)

LOCAL_DEV_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8080")


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    if raw is None:
        origins = list(LOCAL_DEV_ORIGINS)
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    if not any(origin in origins for origin in LOCAL_DEV_ORIGINS):
        logger.warning("CORS allowlist does not include local dev origins: %s", origins)
    return origins


app = FastAPI(title="Équilibra API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(insights_router)
app.include_router(dashboard_router)
app.include_router(goals_router)
app.include_router(offers_router)

# Demo API (sample data for the onboarding screens)
app.include_router(demo_router)
