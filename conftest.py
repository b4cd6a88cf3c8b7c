"""Global pytest configuration."""

import os

# Point the app at an in-memory SQLite database before any offbeat imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
