import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Payments
PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "stripe")  # stripe | fake
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "inr")
PAYMENT_PROVIDER_TIMEOUT = float(os.getenv("PAYMENT_PROVIDER_TIMEOUT", "15"))
MIN_ONLINE_AMOUNT = int(os.getenv("MIN_ONLINE_AMOUNT", "30"))
CHECKOUT_SESSION_TTL_MINUTES = int(os.getenv("CHECKOUT_SESSION_TTL_MINUTES", "60"))

# Client origins (redirect URLs + CORS)
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")
CLIENT_URL_PROD = os.getenv("CLIENT_URL_PROD", "")
CORS_ORIGINS = [origin for origin in (CLIENT_URL, CLIENT_URL_PROD) if origin]

# Realtime stock channel
BROADCAST_SEND_TIMEOUT = float(os.getenv("BROADCAST_SEND_TIMEOUT", "2"))

# Rate limiting
RATE_LIMIT_ENABLED = _flag("RATE_LIMIT_ENABLED")
CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "10/minute")

# Observability
OTEL_TRACING_ENABLED = _flag("OTEL_TRACING_ENABLED")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
METRICS_ENABLED = _flag("METRICS_ENABLED")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
