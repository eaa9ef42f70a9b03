#!/usr/bin/env python3
"""
paths.py
-------------------
Path constants and default locations for the Salonbook tagging engine.

The project structure:
    ROOT/
    ├── salonbook/     # Package code (core, database, migrations)
    ├── data/          # Local SQLite database for development
    └── logs/          # Application logs

Production deployments point the engine at MySQL through the
``SALONBOOK_DB_URL`` environment variable (read by the CLI); the SQLite
file below is only the development default.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from pathlib import Path


def _get_project_root() -> Path:
    """
    Determine project root directory.

    Assumes this file is at ROOT/salonbook/core/paths.py and navigates up
    the directory tree to find ROOT.

    Returns:
        Path object for project root

    Raises:
        RuntimeError: If the package directory cannot be found under ROOT
    """
    current_file = Path(__file__).resolve()

    # Navigate up: paths.py -> core/ -> salonbook/ -> ROOT/
    root = current_file.parent.parent.parent

    if not (root / "salonbook").is_dir():
        raise RuntimeError(
            f"Cannot determine valid project root. "
            f"Expected {root / 'salonbook'} to exist. "
            f"Current file: {current_file}"
        )

    return root


# ----- Project directory -----
ROOT: Path = _get_project_root()
PACKAGE_DIR = ROOT / "salonbook"
DATA_DIR = ROOT / "data"

# --- Database ---
ALEMBIC_DIR = PACKAGE_DIR / "migrations"
DB_PATH = DATA_DIR / "salonbook.db"
DEFAULT_DB_URL = f"sqlite:///{DB_PATH}"
DB_URL_ENV_VAR = "SALONBOOK_DB_URL"

# ---- Logs ----
LOG_DIR = ROOT / "logs"
