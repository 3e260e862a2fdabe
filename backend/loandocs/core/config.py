import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables (only in development)
# In containers, environment variables are set directly
if os.getenv("ENVIRONMENT") != "production":
    load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# File Storage configuration
STORAGE_TYPE = os.getenv("STORAGE_TYPE", "local")  # Options: 'local', 's3'

# Local storage configuration
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR")  # Path to local storage directory

# S3 storage configuration
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME", "ops-loan-data")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "ap-south-1"))
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")  # For S3-compatible services (MinIO, etc.)

# Database configuration
DATABASE_TYPE = os.getenv("DATABASE_TYPE", "json")  # Options: 'json', 'memory'

# JSON database configuration
JSON_DB_PATH = os.getenv("JSON_DB_PATH")  # Path to JSON database directory

# Upload limits, one ceiling per upload surface
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100"))
LEGACY_MAX_UPLOAD_SIZE_MB = int(os.getenv("LEGACY_MAX_UPLOAD_SIZE_MB", "50"))

DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "text/plain",
    "text/csv",
]
ALLOWED_MIME_TYPES = [
    mime.strip()
    for mime in os.getenv("ALLOWED_MIME_TYPES", ",".join(DEFAULT_ALLOWED_MIME_TYPES)).split(",")
    if mime.strip()
]

# Signed download URLs
SIGNED_URL_EXPIRES_IN = int(os.getenv("SIGNED_URL_EXPIRES_IN", "3600"))  # 1 hour

# Metadata insert retry (delay = base * 2^retry)
DB_MAX_ATTEMPTS = int(os.getenv("DB_MAX_ATTEMPTS", "3"))
DB_RETRY_BASE_DELAY = float(os.getenv("DB_RETRY_BASE_DELAY", "1.0"))

# Stop starting new files once the batch has run this long (host ceiling is ~60s)
BATCH_DEADLINE_SECONDS = float(os.getenv("BATCH_DEADLINE_SECONDS", "55"))

# Business prefix carried by loan identifiers (BIZLN-4189)
LOAN_ID_PREFIX = os.getenv("LOAN_ID_PREFIX", "BIZLN-")

# Rate Limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "100"))
RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "1000"))

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
