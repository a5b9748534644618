import os

# Settings are read once at import time, so test values must be in place first.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///data/test_reportdata.db")
os.environ.setdefault("REPORTDATA_UPDATE_DELAY_MILLIS", "100")
os.environ.setdefault("REPORTDATA_CLEANUP_FREQUENCY_MILLIS", "50")
