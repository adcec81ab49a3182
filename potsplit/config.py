import os
from dotenv import load_dotenv

load_dotenv()


def _split_list(value: str):
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Secret key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Session cookie written by the upstream auth layer
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "potsplit_session")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    CORS_ORIGINS = _split_list(os.environ.get("CORS_ORIGINS", "http://localhost:3000"))

    # Database config (defaults allow local run without crashing)
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", 3306))
    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_NAME = os.environ.get("DB_NAME", "potsplit")
    DB_POOL_SIZE = int(os.environ.get("DB_POOL_SIZE", 10))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

config = Config()
