"""
Pytest configuration shared by every test package.

Puts the repository root on ``sys.path`` (so ``import app`` works without an
install) and pins the environment before ``app.core.settings`` is imported:
an in-memory database, no rate limiting and a fixed key pattern.
"""
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("KEY_PREFIX", "AIzaSy")
os.environ.setdefault("KEY_MIN_LENGTH", "33")
os.environ.setdefault("KEY_MAX_LENGTH", "33")
os.environ.setdefault("BATCH_SIZE", "10")
os.environ.setdefault("GEMINI_MODELS_URL", "https://gemini.test/v1beta/models")
