import os

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "cinema")

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", 5000))
API_DEBUG = os.environ.get("API_DEBUG", "false").strip().lower() in {"1", "true", "yes", "on"}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

DEFAULT_PAGE = int(os.environ.get("DEFAULT_PAGE", 1))
DEFAULT_LIMIT = int(os.environ.get("DEFAULT_LIMIT", 10))

# 5 km around a point
NEAR_DISTANCE_METERS = int(os.environ.get("NEAR_DISTANCE_METERS", 5000))
EARTH_RADIUS_KM = float(os.environ.get("EARTH_RADIUS_KM", 6378.1))

MIN_MOVIE_YEAR = 1500
TOP_RATED_PER_USER = 5
