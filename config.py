import os

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()

PLACEHOLDER_VALUES = {"", "YOUR_REMOTE_URL", "YOUR_API_KEY", "changeme"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Remote table store (PostgREST / Supabase style)
    REMOTE_URL = os.getenv("REMOTE_URL", "")
    REMOTE_API_KEY = os.getenv("REMOTE_API_KEY", "")
    REMOTE_TIMEOUT = float(os.getenv("REMOTE_TIMEOUT", "10"))
    REMOTE_COLLECTIONS = {
        "projects": os.getenv("TABLE_PROJECTS", "projects"),
        "activities": os.getenv("TABLE_ACTIVITIES", "activities"),
        "beneficiaries": os.getenv("TABLE_BENEFICIARIES", "beneficiaries"),
        "indicators": os.getenv("TABLE_INDICATORS", "indicators"),
        "partners": os.getenv("TABLE_PARTNERS", "partners"),
    }

    ORGANIZATION_NAME = os.getenv("ORGANIZATION_NAME", "NGO Monitoring & Evaluation")
    CURRENCY = os.getenv("CURRENCY", "EUR")

    # Map defaults (Dakar)
    MAP_CENTER = (14.7167, -17.4667)
    MAP_ZOOM = 7
    MAP_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    MAP_ATTRIBUTION = "© OpenStreetMap contributors"

    # Impact targets used by the impact report. Indicator rows with a matching
    # code override these values.
    IMPACT_TARGETS = {
        "trained": 1000,
        "graduation_rate": 70,
        "women_supported": 600,
        "youth_reached": 800,
    }

    # Minimum vertical space (points) a report section needs before a new page
    PAGE_BREAK_THRESHOLD = 140


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    REMOTE_URL = "https://example.test"
    REMOTE_API_KEY = "test-key"


def check_remote_settings(url, api_key):
    """Raise ConfigurationError when the remote URL or key is missing or a placeholder."""
    if (url or "").strip() in PLACEHOLDER_VALUES:
        raise ConfigurationError("Remote data store URL is not configured (REMOTE_URL).")
    if not url.startswith(("http://", "https://")):
        raise ConfigurationError(f"Remote data store URL must be http(s): {url!r}")
    if (api_key or "").strip() in PLACEHOLDER_VALUES:
        raise ConfigurationError("Remote data store API key is not configured (REMOTE_API_KEY).")
