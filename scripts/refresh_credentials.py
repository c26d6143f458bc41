#!/usr/bin/env python3
"""
Refreshment

Renew your AWS credentials with a new token from your MFA device, or by
running Substrate. Installed as the ``refreshment`` console script; this
wrapper runs it from a source checkout.
"""

import sys
from pathlib import Path

# Add the parent directory to sys.path to import from refreshment
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
from refreshment.cli import main

if __name__ == "__main__":
    sys.exit(main())
