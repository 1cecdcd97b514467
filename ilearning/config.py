"""Configuration management"""
import os
from pathlib import Path
from functools import lru_cache

import platformdirs
from dotenv import load_dotenv

load_dotenv()

APP_NAME = "ilearning-mcp"

# Per-user directories so an installed package never writes into site-packages
DATA_DIR = Path(os.getenv("DATA_DIR", platformdirs.user_data_dir(APP_NAME, appauthor=False)))
LOG_DIR = Path(os.getenv("LOG_DIR", platformdirs.user_log_dir(APP_NAME, appauthor=False)))
CREDENTIALS_FILE = Path(os.getenv("CREDENTIALS_FILE", DATA_DIR / "credentials.json"))

LMS_BASE_URL = os.getenv("LMS_BASE_URL", "https://lms2020.nchu.edu.tw").rstrip("/")
LMS_USER_AGENT = os.getenv(
    "LMS_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
)

LOGIN_PATH = "/index/login"
CAPTCHA_PATH = "/sys/libs/class/capcha/secimg.php"
CAPTCHA_PARAMS = {"charLens": "6", "codeType": "num"}
DASHBOARD_EVENTS_PATH = "/dashboard/latestEvent"
SESSION_COOKIE = "PHPSESSID"

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
RESOURCE_TIMEOUT = float(os.getenv("RESOURCE_TIMEOUT", "300"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
RETRY_BACKOFF_BASE = float(os.getenv("RETRY_BACKOFF_BASE", "2"))
MIN_REFRESH_INTERVAL = float(os.getenv("MIN_REFRESH_INTERVAL", "300"))

MCP_SERVER_NAME = os.getenv("MCP_SERVER_NAME", "NCHU iLearning MCP")

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOG_DIR.mkdir(parents=True, exist_ok=True)
CREDENTIALS_FILE.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def default_headers() -> dict[str, str]:
    return {"User-Agent": LMS_USER_AGENT}
