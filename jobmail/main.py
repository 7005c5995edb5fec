import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobmail.core import config
from jobmail.core.logging_config import setup_logging, sanitize_log_data
from jobmail.api.routes import auth, applications, subscriptions, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)

    if config.RUN_MIGRATIONS:
        from jobmail.db.migrate import run_migrations
        run_migrations()
    else:
        from jobmail.db.init_db import init_db
        init_db()

    settings = {
        "database_url": config.DATABASE_URL,
        "run_migrations": config.RUN_MIGRATIONS,
        "free_starting_credits": config.FREE_STARTING_CREDITS,
        "razorpay_key_id": config.RAZORPAY_KEY_ID or None,
        "airtable_table": config.AIRTABLE_TABLE_NAME if config.AIRTABLE_BASE_ID else None,
    }
    logger.info(f"JobMail API started: {sanitize_log_data(settings)}")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="JobMail API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(auth.router)
app.include_router(applications.router)
app.include_router(subscriptions.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "JobMail API running"}
