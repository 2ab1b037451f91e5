import os
from starlette.config import Config
from starlette.datastructures import CommaSeparatedStrings

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
_env_file = os.path.join(BASE_DIR, ".env")

config = Config(_env_file if os.path.exists(_env_file) else None)

DATABASE_URL = config("DATABASE_URL", default=f"sqlite:///{os.path.join(BASE_DIR, 'rides.db')}")
STORE_TIMEOUT_SECONDS = config("STORE_TIMEOUT_SECONDS", cast=float, default=5.0)
LIFECYCLE_STRICT = config("LIFECYCLE_STRICT", cast=bool, default=True)
LOG_LEVEL = config("LOG_LEVEL", default="INFO")
DEBUG = config("DEBUG", cast=bool, default=False)
CORS_ORIGINS = config("CORS_ORIGINS", cast=CommaSeparatedStrings, default="*")
