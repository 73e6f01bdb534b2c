"""Point the sandbox at a throwaway SQLite file before ``repo`` is imported."""

import os
import sys
import tempfile
from pathlib import Path

HERE = Path(__file__).resolve().parent
os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.mkdtemp()) / 'sandbox.db'}"
os.environ.setdefault("SANDBOX_CONSUMER_KEY", "ck_sandbox")
os.environ.setdefault("SANDBOX_CONSUMER_SECRET", "cs_sandbox")
if str(HERE) not in sys.path:
    sys.path.insert(0, str(HERE))
