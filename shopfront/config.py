import os
from typing import Dict, Iterable, List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationMissing

DEFAULT_FRONTEND_URL = "http://localhost:3000"
DEFAULT_PORT = 8080
REQUIRED_SETTINGS = ("MONGO_URI", "STRIPE_SECRET_KEY")


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw_value = os.getenv(name, str(default))
    try:
        return max(minimum, int(raw_value))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    raw_value = os.getenv(name, str(default))
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def build_allowed_origins(frontend_url: str, extra: str) -> List[str]:
    origins = [frontend_url]
    for origin in extra.split(","):
        trimmed = origin.strip()
        if trimmed:
            origins.append(trimmed)
    return [origin for origin in origins if origin]


def load_settings(
    overrides: Optional[Dict] = None, required: Iterable[str] = REQUIRED_SETTINGS
) -> Dict[str, object]:
    """Read process configuration from the environment (and ``.env``).

    ``overrides`` take precedence over the environment. Every name in
    ``required`` must end up non-empty, otherwise ``ConfigurationMissing``
    is raised listing all of the absent ones.
    """
    load_dotenv()

    frontend_url = _env("FRONTEND_URL", DEFAULT_FRONTEND_URL).rstrip("/")
    settings: Dict[str, object] = {
        # MONGODB_URL is what the deployment sets; MONGO_URI is what
        # Flask-PyMongo reads.
        "MONGO_URI": _env("MONGODB_URL") or _env("MONGO_URI"),
        "MONGO_DBNAME": _env("MONGO_DBNAME", "test"),
        "MONGO_SERVER_SELECTION_TIMEOUT_MS": _env_int(
            "MONGO_SERVER_SELECTION_TIMEOUT_MS", 5000, minimum=1
        ),
        "STRIPE_SECRET_KEY": _env("STRIPE_SECRET_KEY"),
        "STRIPE_API_BASE": _env("STRIPE_API_BASE", "https://api.stripe.com"),
        "CHECKOUT_CURRENCY": _env("CHECKOUT_CURRENCY", "inr").lower(),
        "PAYMENT_TIMEOUT_SECONDS": _env_float("PAYMENT_TIMEOUT_SECONDS", 30.0),
        "FRONTEND_URL": frontend_url,
        "CORS_ALLOWED_ORIGINS": build_allowed_origins(
            frontend_url, _env("CORS_ALLOWED_ORIGINS")
        ),
        "MAX_CONTENT_LENGTH": _env_int("MAX_BODY_SIZE_MB", 10, minimum=1)
        * 1024
        * 1024,
        "BCRYPT_ROUNDS": _env_int("BCRYPT_ROUNDS", 12, minimum=4),
        "TRUSTED_PROXY_HOPS": _env_int("TRUSTED_PROXY_HOPS", 1),
        "PORT": _env_int("PORT", DEFAULT_PORT, minimum=1),
    }
    if overrides:
        settings.update(overrides)

    missing = [name for name in required if not settings.get(name)]
    if missing:
        raise ConfigurationMissing(missing)

    return settings
