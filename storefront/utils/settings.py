# storefront/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

API_BASE_URL = os.getenv("API_BASE_URL", "https://fadomart-api.onrender.com")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 10))

# token persistence: "file" or "redis"
TOKEN_STORE = os.getenv("TOKEN_STORE", "file")
TOKEN_FILE = os.path.expanduser(os.getenv("TOKEN_FILE", "~/.storefront/token"))
TOKEN_KEY = os.getenv("TOKEN_KEY", "token")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

PROFILE_REFRESH_SECONDS = int(os.getenv("PROFILE_REFRESH_SECONDS", 5 * 60))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
