"""Root conftest: test environment must be in place before notify_broker.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

# The suite never talks to a real Redis, even without .env.test.
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-notify-broker-0123456789")
