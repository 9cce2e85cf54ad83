"""Shared test setup.

Settings are read at import time and JWT_SECRET has no default, so it is
pinned here before any src module is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
