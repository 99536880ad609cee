# inventario/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import SessionLocal, init_db
from utils.errors import register_exception_handlers
from utils.logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

# Router imports
from routes.auth import router as auth_router
from routes.categories import router as categories_router
from routes.health import router as health_router
from routes.logs import router as logs_router
from routes.movements import router as movements_router
from routes.products import router as products_router
from routes.roles import router as roles_router
from routes.users import router as users_router

# Initialization
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED_ON_STARTUP:
        from seed import seed_base_data

        db = SessionLocal()
        try:
            seed_base_data(db)
        finally:
            db.close()
    logger.info("Inventario API started")
    yield
    logger.info("Inventario API stopped")


app = FastAPI(title="Inventario API", version="1.0.0", lifespan=lifespan)

register_exception_handlers(app)

# CORS Configuration
# Local frontend dev servers plus FRONTEND_URL from the environment
origins = [
    "http://localhost:3000",
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

# Router registration
app.include_router(auth_router)
app.include_router(health_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(movements_router)
app.include_router(roles_router)
app.include_router(users_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Inventario API running"}
