import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .database import close_db_pool, db_connection, init_db_pool
from .goals import router as goals_router
from .services.deposits import DepositReconciler
from .services.goal_collection import GoalCollection
from .stores.base import GoalStore
from .stores.http_store import HttpGoalStore
from .stores.memory_store import InMemoryGoalStore
from .stores.postgres_store import PostgresGoalStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_goal_store(config: Settings) -> GoalStore:
    if config.store_backend == "http":
        return HttpGoalStore(
            base_url=config.store_base_url,
            timeout_seconds=config.store_timeout_seconds,
            max_retries=config.store_max_retries,
        )
    if config.store_backend == "postgres":
        return PostgresGoalStore(db_connection)
    return InMemoryGoalStore()


def build_goal_collection(config: Settings, store: GoalStore) -> GoalCollection:
    reconciler = DepositReconciler(
        store,
        max_attempts=config.deposit_max_attempts,
        retry_delay_seconds=config.deposit_retry_delay_seconds,
    )
    return GoalCollection(store, reconciler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db_pool()
    store = build_goal_store(settings)
    if isinstance(store, PostgresGoalStore):
        await store.ensure_schema()

    collection = build_goal_collection(settings, store)
    await collection.refresh()
    app.state.goal_collection = collection
    logger.info("Goal collection ready (backend=%s)", settings.store_backend)

    yield

    await store.close()
    await close_db_pool()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(goals_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
