import os

from dotenv import load_dotenv

load_dotenv()

PRACTICE_API_BASE_URL = os.getenv("PRACTICE_API_BASE_URL", "http://localhost:3000").rstrip("/")
PRACTICE_API_TOKEN = os.getenv("PRACTICE_API_TOKEN", "")
PRACTICE_API_TIMEOUT = float(os.getenv("PRACTICE_API_TIMEOUT", "15"))

# Bearer key required by the HTTP surface
CALENDAR_SERVICE_KEY = os.getenv("CALENDAR_SERVICE_KEY", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Visible hour window of the week/day grids
CALENDAR_START_HOUR = int(os.getenv("CALENDAR_START_HOUR", "7"))
CALENDAR_END_HOUR = int(os.getenv("CALENDAR_END_HOUR", "21"))
