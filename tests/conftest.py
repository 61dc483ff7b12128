import sys
from pathlib import Path
import os


# Ensure project src is on path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (ROOT, SRC):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

# Keep tests offline: no real inference key, no backoff waits
os.environ["GEMINI_API_KEY"] = ""
os.environ.setdefault("RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("INDICATOR_JITTER", "0")
