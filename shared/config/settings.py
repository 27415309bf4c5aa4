import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Backend services behind the gateway
USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", "http://localhost:3001")
PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://localhost:3002")
ORDER_SERVICE_URL = os.getenv("ORDER_SERVICE_URL", "http://localhost:3003")

# Order creation
PRODUCT_LOOKUP_TIMEOUT = float(os.getenv("PRODUCT_LOOKUP_TIMEOUT", "5.0"))
PRODUCT_LOOKUP_CONCURRENCY = int(os.getenv("PRODUCT_LOOKUP_CONCURRENCY", "4"))
ORDER_ENFORCE_TRANSITIONS = _env_bool("ORDER_ENFORCE_TRANSITIONS")

# Gateway
GATEWAY_UPSTREAM_TIMEOUT = float(os.getenv("GATEWAY_UPSTREAM_TIMEOUT", "30.0"))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

# Observability
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
SQL_ECHO = _env_bool("SQL_ECHO")
