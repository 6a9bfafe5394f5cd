"""
Root pytest configuration for CellScan.

Sets up Python path and test environment variables for all test directories.
"""

import os
import sys
from pathlib import Path

# Set test environment variables before anything else imports settings
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("OBSERVABILITY_LOG_LEVEL", "DEBUG")
os.environ.setdefault("OBSERVABILITY_LOG_FORMAT", "console")

# Project root
project_root = Path(__file__).parent

# Add src directory to path for imports (cellscan_common)
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Add project root to path (services.*)
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
