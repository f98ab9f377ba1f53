#!/usr/bin/env python3
"""
Collection Harvest - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Runs either pipeline from one executable:

- harvest   : pull a collection's assets, events, owners and images
- normalize : renumber the harvested corpus by provenance

============================================================
USAGE
============================================================
    python app.py harvest my-collection
    python app.py normalize .metadata/my-collection out --inject-mint-date

Environment-based configuration (.env supported):
    MARKETPLACE_API_KEY=... python app.py harvest my-collection
    GIPHY_API_KEY=... python app.py normalize in out --substitute-media

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from orchestrator.cli import main


if __name__ == "__main__":
    sys.exit(main())
