"""
Room Furniture Layout – FastAPI Backend

Main entry point. Sets up logging, CORS, includes all routes, initializes DB.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import CORS_ORIGINS, LOG_LEVEL, LAYOUT_RULES_PATH
from database import init_db
from services.furniture_layout import load_rule_book

# Import route modules
from routes.layout import router as layout_router
from routes.identity import router as identity_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and load the rule tables on startup."""
    await init_db()
    load_rule_book(LAYOUT_RULES_PATH)
    yield


app = FastAPI(
    title="Room Furniture Layout",
    description="Place detected and identity-driven furniture in a room",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(layout_router)
app.include_router(identity_router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    from config import HOST, PORT
    uvicorn.run("main:app", host=HOST, port=PORT, reload=True)
