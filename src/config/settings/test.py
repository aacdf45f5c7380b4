"""Test settings - uses SQLite for fast local testing."""
import os

os.environ.setdefault("SECRET_KEY", "test-only-secret-key-not-for-production-use-0123456789")
os.environ.setdefault("DEBUG", "True")

from .base import *  # noqa: E402,F401,F403

DEBUG = True

# Use SQLite for tests (no PostgreSQL dependency)
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
DATABASES["default"]["ATOMIC_REQUESTS"] = False

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Run Celery tasks inline
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable API throttling in tests for deterministic runs
REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []  # noqa: F405
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}  # noqa: F405

GOALS_RECALC_ON_DASHBOARD = False

# Quiet logging during tests; records still reach caplog through root
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
for _name in ("bulwark", "goals"):
    LOGGING["loggers"][_name]["handlers"] = []  # noqa: F405
    LOGGING["loggers"][_name]["level"] = "WARNING"  # noqa: F405
    LOGGING["loggers"][_name]["propagate"] = True  # noqa: F405
