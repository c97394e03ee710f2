import logging
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rentals.db")

# Seconds a request waits for another request on the same listing to finish
LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"))
RETRY_AFTER_SECONDS = int(os.getenv("RETRY_AFTER_SECONDS", "1"))

SERVICE_FEE_RATE = os.getenv("SERVICE_FEE_RATE", "0.12")
CURRENCY = os.getenv("CURRENCY", "INR")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging():
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
