from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roadbook.api import routes
from roadbook.database import init_db
from roadbook.log import setup_logging

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Roadbook record store...")
    await init_db()
    yield
    logger.info("Roadbook record store shutdown completed")


app = FastAPI(title="Roadbook API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
