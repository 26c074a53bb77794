"""Application configuration via environment variables."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{BASE_DIR / 'layouts.db'}")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")

# Layout engine
DEFAULT_ROOM_LENGTH_FT = float(os.getenv("DEFAULT_ROOM_LENGTH_FT", "20"))
DEFAULT_ROOM_WIDTH_FT = float(os.getenv("DEFAULT_ROOM_WIDTH_FT", "16"))
DEFAULT_ROOM_HEIGHT_FT = float(os.getenv("DEFAULT_ROOM_HEIGHT_FT", "9"))
LAYOUT_RULES_PATH = os.getenv("LAYOUT_RULES_PATH") or None

# Seeds the last-resort random placement; unset means a fresh seed per request
_seed = os.getenv("LAYOUT_RANDOM_SEED", "")
LAYOUT_RANDOM_SEED = int(_seed) if _seed.strip() else None
