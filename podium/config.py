import os


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


DB_HOST = _env("DB_HOST", "localhost")
DB_PORT = _env("DB_PORT", "3306")
DB_NAME = _env("DB_NAME", "podium")
DB_USER = _env("DB_USER", "podium")
DB_PASSWORD = _env("DB_PASSWORD", "podium")

DATABASE_URL = _env(
    "DATABASE_URL",
    f"mysql+aiomysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

AUTO_CREATE_TABLES = _env("AUTO_CREATE_TABLES", "false").lower() == "true"

CORS_ORIGINS = [
    origin.strip()
    for origin in _env("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()

API_BASE_URL = _env("API_BASE_URL", "http://localhost:8000")
