import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./studiohub.db")

# Frontend base URL (dashboard) and allowed CORS origins
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# AI gateway (OpenAI-compatible chat completions) used for booking suggestions
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY")
AI_GATEWAY_MODEL = os.getenv("AI_GATEWAY_MODEL", "google/gemini-3-flash-preview")
# Hard upper bound on the suggestion call; the deterministic fallback kicks in after this
AI_GATEWAY_TIMEOUT_SECONDS = float(os.getenv("AI_GATEWAY_TIMEOUT_SECONDS", "8.0"))

# Size of the fallback alternatives pool when no tags can be derived
ALTERNATIVES_FALLBACK_LIMIT = int(os.getenv("ALTERNATIVES_FALLBACK_LIMIT", "5"))
