# Configuration settings for the Hospital Management dashboard API
import os

from dotenv import load_dotenv

load_dotenv()

# JWT Configuration
SECRET_KEY = os.getenv("HOSPITAL_SECRET_KEY", "hospital-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Database Configuration
DATABASE_PATH = os.getenv("HOSPITAL_DATABASE_PATH", "hospital.db")

# Startup and resolution timeouts (seconds)
INIT_TIMEOUT_SECONDS = float(os.getenv("INIT_TIMEOUT_SECONDS", "10"))
RESOLVE_TIMEOUT_SECONDS = float(os.getenv("RESOLVE_TIMEOUT_SECONDS", "5"))

# Session cache
SESSION_CACHE_KEY = "currentUser"

# Pages
DEFAULT_PAGE = "index.html"
LOGIN_PAGE = "login.html"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Identities created on first start: (email, display name, password, role, department)
SEED_IDENTITIES = [
    (
        os.getenv("DEFAULT_ADMIN_EMAIL", "admin@hospital.com"),
        "System Administrator",
        os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123"),
        "Admin",
        "Admin",
    ),
    ("doctor1@hospital.com", "Doctor One", "doctor123", "Doctor", "General Medicine"),
    ("nurse1@hospital.com", "Nurse One", "nurse123", "Nurse", "Ward A"),
]

# API Configuration
API_TITLE = "Hospital Management System"
API_VERSION = "2.0.0"
HOST = os.getenv("API_HOST", "127.0.0.1")
PORT = int(os.getenv("API_PORT", "8000"))
