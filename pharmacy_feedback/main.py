import asyncio
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from pharmacy_feedback.db.postgres import create_tables
from pharmacy_feedback.feedback_sessions.cleanup import CLEANUP_ENABLED, run_cleanup_loop
from pharmacy_feedback.feedback_sessions.router import router as sync_router, admin_router as feedback_sessions_router
from pharmacy_feedback.settings.router import router as settings_router
from pharmacy_feedback.directory.router import router as directory_router
from pharmacy_feedback.statistics.router import router as statistics_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    cleanup_task = None
    if CLEANUP_ENABLED:
        cleanup_task = asyncio.create_task(run_cleanup_loop())
    yield
    if cleanup_task:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            logger.info("Abandoned session cleanup stopped")


app = FastAPI(title="Pharmacy Feedback Service", lifespan=lifespan)

app.include_router(sync_router)
app.include_router(feedback_sessions_router)
app.include_router(settings_router)
app.include_router(statistics_router)  # before /admin/employees/{employee_id}
app.include_router(directory_router)


@app.get("/health")
def health():
    return {"status": "ok"}
