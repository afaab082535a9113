import os
import sys
from pathlib import Path

PKG_ROOT = Path(__file__).resolve().parent
# works both from sources and from a PyInstaller bundle
BASE_RES = Path(getattr(sys, "_MEIPASS", PKG_ROOT))

LOG_DIR = Path(os.environ.get("FW_AUDIT_LOG_DIR", PKG_ROOT / "logs"))
LOG_FILE = LOG_DIR / "session.jsonl"
APP_NAME = "Firmware audit"

RULES_DIR = BASE_RES / "policy" / "rules"
# load order is observable: caller modules may depend on both packages
FIXED_MODULES = ("compartment", "rtos")
