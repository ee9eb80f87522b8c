# tests/conftest.py

import os
import sys
from pathlib import Path

# Console-only logging during tests (set before phishguard is imported)
os.environ.setdefault("PHISHGUARD_LOG_DIR", "")

# Add the project root to sys.path so `import phishguard` works
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
