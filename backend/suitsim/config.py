"""Settings read from the environment."""

import os

LOG_LEVEL = os.getenv("SUITSIM_LOG_LEVEL", "INFO").upper()

# Background runner
RUNNER_THREADS = int(os.getenv("SUITSIM_RUNNER_THREADS", "4"))
MAX_WORKERS = int(os.getenv("SUITSIM_MAX_WORKERS", "8"))
PARALLEL_MIN_HANDS = int(os.getenv("SUITSIM_PARALLEL_MIN_HANDS", "100000"))

# API
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "SUITSIM_CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174",
    ).split(",")
    if origin.strip()
]
