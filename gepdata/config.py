"""
Runtime configuration, read from the environment (and a local .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()

SERVICE_NAME = "GEP Data Service"

# memory | snowflake
STORE_BACKEND = os.getenv("GEP_STORE", "memory").strip().lower()

# Directory ingested into the memory store at startup (optional)
DATA_DIR = os.getenv("GEP_DATA_DIR", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

SNOWFLAKE_DATABASE = os.getenv("SNOWFLAKE_DATABASE", "")
SNOWFLAKE_SCHEMA = os.getenv("SNOWFLAKE_SCHEMA", "")
SNOWFLAKE_DEFAULT_ROLE = os.getenv("SNOWFLAKE_DEFAULT_ROLE") or None
SNOWFLAKE_QUERY_TIMEOUT = int(os.getenv("SNOWFLAKE_QUERY_TIMEOUT", "60"))
