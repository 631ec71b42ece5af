import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.core.container import Container
from app.core.database import init_db, AsyncSessionLocal
from app.core.errors import register_error_handlers
from app.core.seed import seed_data
from app.repositories.sql import SqlCategoryRepository, SqlUserRepository
from app.services.auth import AuthService
from app.api.router import api_router
from app.utils.dates import now_local

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "Webhooks",
        "description": "Inbound bank-alert emails delivered by Resend.",
    },
    {
        "name": "Transactions",
        "description": "Categorized spending, from email or entered by hand.",
    },
    {
        "name": "Feedback",
        "description": "Conversational re-categorization and approval.",
    },
    {
        "name": "Dashboard",
        "description": "Spending against budgets and alerts.",
    },
    {
        "name": "System",
        "description": "Liveness.",
    },
]

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
### Aura API

Email-driven expense tracking: bank alerts are categorized by a per-user
vendor cache first and an AI agent on a miss.

    """,
    version=settings.VERSION,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.on_event("startup")
async def startup():
    await init_db()
    app.state.container = Container.build(settings)
    async with AsyncSessionLocal() as session:
        await seed_data(AuthService(SqlUserRepository(session), SqlCategoryRepository(session)))
    logger.info("%s started (env=%s)", settings.PROJECT_NAME, settings.PROJECT_ENV)


@app.on_event("shutdown")
async def shutdown():
    container = getattr(app.state, "container", None)
    if container is not None:
        await container.close()


app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["System"])
def health():
    return {
        "status": "ok",
        "env": settings.PROJECT_ENV,
        "system_time": now_local(),
        "frozen_time": settings.FROZEN_NOW is not None,
    }
