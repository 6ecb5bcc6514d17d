import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment
from models.currency import FxConfig

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    _runtime_env_str = os.environ.get("RUNTIME_ENVIRONMENT")
    if not _runtime_env_str:
        raise ValueError("RUNTIME_ENVIRONMENT environment variable is not set")
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(_runtime_env_str)
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

IS_PRODUCTION = RUNTIME_ENVIRONMENT == RuntimeEnvironment.PROD

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT")) if os.environ.get("WEBAPP_PORT") else 9000
CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",") if os.environ.get("CORS_ALLOWED_ORIGINS") else []  # Storefront origins

# Database (async SQLAlchemy URL)
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/store.db")

# Pricing rule table (EUR-denominated)
PRICING_TABLE_PATH = os.environ.get(
    "PRICING_TABLE_PATH",
    str(Path(__file__).parent / "data" / "pricing.json")
)

# Design-your-own catalog anchors
DESIGN_PRODUCT_HANDLE = os.environ.get("DESIGN_PRODUCT_HANDLE", "design-your-own")
DESIGN_VARIANT_TITLE = os.environ.get("DESIGN_VARIANT_TITLE", "Custom")
DESIGN_LINE_ITEM_TITLE = os.environ.get("DESIGN_LINE_ITEM_TITLE", "Custom LED Panel")
DEFAULT_SALES_CHANNEL_ID = os.environ.get("DEFAULT_SALES_CHANNEL_ID") or None

# Parse DESIGN_ADD_MAX_QTY with error handling
try:
    DESIGN_ADD_MAX_QTY = int(os.environ.get("DESIGN_ADD_MAX_QTY", "99"))
    if DESIGN_ADD_MAX_QTY <= 0:
        raise ValueError(f"DESIGN_ADD_MAX_QTY must be positive (got: {DESIGN_ADD_MAX_QTY})")
except ValueError as e:
    print(f"\n ERROR: Invalid DESIGN_ADD_MAX_QTY configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Expected: Positive integer (e.g., 10, 99)", file=sys.stderr)
    print(f"Current value: {os.environ.get('DESIGN_ADD_MAX_QTY', '(not set)')}\n", file=sys.stderr)
    sys.exit(1)

# FX rates: EUR -> currency multipliers, overridable per currency via env
# (FX_EUR_USD, GG_FX_EUR_USD, FX_USD, GG_FX_USD, EUR_USD_RATE - first valid wins)
FX_CONFIG = FxConfig.from_mapping(os.environ)

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs
LOG_DIR = os.environ.get("LOG_DIR", "logs")

# Log retention: short in production (data minimization), longer elsewhere for debugging
if IS_PRODUCTION:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "14"))
