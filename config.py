"""
Configuration for the Hometown Marketplace core.

Reads settings from the environment (and an optional .env file) so that
services, the database manager and the seeding script share one source.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///marketplace.db")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Discovery
DEFAULT_RADIUS_MILES = float(os.getenv("DEFAULT_RADIUS_MILES", "10"))
NEARBY_SELLER_LIMIT = int(os.getenv("NEARBY_SELLER_LIMIT", "50"))
PRODUCT_LIST_LIMIT = int(os.getenv("PRODUCT_LIST_LIMIT", "50"))
GEOHASH_PRECISION = int(os.getenv("GEOHASH_PRECISION", "10"))

# Accounts allowed to moderate bug reports and suggestions
ADMIN_EMAILS = [
    email.strip().lower()
    for email in os.getenv("ADMIN_EMAILS", "").split(",")
    if email.strip()
]

GOOGLEMAPS_API_KEY = os.getenv("GOOGLEMAPS_API_KEY")
