"""
Test suite for TeeGetha.

Covers the wizard core (geometry, garments, workflow, orchestration,
stylization, session), the vendor adapters and the HTTP proxy.
"""

import sys
from pathlib import Path

# Make the project root importable when running tests from a checkout
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
