"""Development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True

# Local databases drift whenever fixtures are loaded by hand; rebuild on view.
GOALS_RECALC_ON_DASHBOARD = env.bool("GOALS_RECALC_ON_DASHBOARD", default=True)  # noqa: F405

# CORS
CORS_ALLOW_ALL_ORIGINS = True

# Logging
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["goals"]["level"] = "DEBUG"  # noqa: F405
