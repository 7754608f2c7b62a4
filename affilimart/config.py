"""Runtime configuration for the Affilimart application."""

import os
import logging
from logging.handlers import TimedRotatingFileHandler

from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "development")

# Base URL for the JSON document store
STORE_URL = os.getenv("STORE_URL", "http://localhost:3000")
STORE_DB_FILE = os.getenv("STORE_DB_FILE", os.path.join("data", "db.json"))

# Secret for JWT token generation - set JWT_SECRET in production
JWT_SECRET = os.getenv("JWT_SECRET", "affilimart_secret_key")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_DAYS = int(os.getenv("JWT_EXPIRATION_DAYS", "7"))

# Referral links encoded into affiliate QR codes point here
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
QR_FOLDER = os.getenv("QR_FOLDER", "affiliates/qrcodes")

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_dir: str = None, console_level: int = None) -> None:
    """
    Configure console and file logging.

    Console output goes to stderr, at ``console_level`` when given. Application
    logs rotate daily and keep two weeks of history; errors are duplicated
    into a separate error.log.
    """
    log_dir = log_dir or LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    if console_level is not None:
        console.setLevel(console_level)

    rotating = TimedRotatingFileHandler(
        os.path.join(log_dir, "application.log"), when="midnight", backupCount=14
    )
    rotating.setFormatter(formatter)

    errors = logging.FileHandler(os.path.join(log_dir, "error.log"))
    errors.setLevel(logging.ERROR)
    errors.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in (console, rotating, errors):
        root.addHandler(handler)
