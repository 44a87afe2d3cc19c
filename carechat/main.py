import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from carechat.database import close_db, init_db
from carechat.routers import auth, chat, patients

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting CareChat...")
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("CareChat shut down")


app = FastAPI(
    title="CareChat",
    description="Clinical data-entry assistant for doctors and interns",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(auth.router)
app.include_router(patients.router)
app.include_router(chat.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
