"""Allow running as: python -m sow_pricing"""

import sys

from sow_pricing.main import main

if __name__ == "__main__":
    sys.exit(main())
