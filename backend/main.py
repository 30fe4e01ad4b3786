from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging
import os
from config import get_settings
from db.database import init_db, close_db
from api.routes.convert import router as convert_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("lms_convert")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting LMS document conversion API...")
    await init_db()
    logger.info("Database initialized.")
    yield
    # Shutdown
    await close_db()
    logger.info("Shutting down LMS document conversion API...")


app = FastAPI(
    title="LMS Document Conversion API",
    description="Converts .docx documents into TipTap editor content",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(convert_router)

# Files written by the local storage provider
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/media", StaticFiles(directory=settings.UPLOAD_DIR), name="media")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "lms-convert"}
