import os
from dotenv import load_dotenv
load_dotenv()
# ---- TonAPI ----
TONAPI_API_KEY = os.environ.get("TONAPI_API_KEY")
TONAPI_BASE_URL = os.environ.get("TONAPI_BASE_URL", "https://tonapi.io")

TONAPI_REQUESTS_PER_SEC = float(os.environ.get("TONAPI_REQUESTS_PER_SEC", "1.0"))
TONAPI_TIMEOUT_SEC = int(os.environ.get("TONAPI_TIMEOUT_SEC", "15"))
TONAPI_MAX_RETRIES = int(os.environ.get("TONAPI_MAX_RETRIES", "3"))

# ---- Traces ----

# Upper bound on the number of transactions accepted when loading a trace.
MAX_TRACE_LENGTH = int(os.environ.get("MAX_TRACE_LENGTH", "5000"))

# ---- Logging ----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
