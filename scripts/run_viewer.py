#!/usr/bin/env python3
"""
Terminal viewer entrypoint. Optional first argument is a bundle path;
without one the last connected bundle is restored.
"""

import sys
from pathlib import Path

# Load environment variables from .env file first
import dotenv
dotenv.load_dotenv()

# Add project root to path for imports (faiss_viewer/ and tui/ are both in project root)
sys.path.insert(0, str(Path(__file__).parent.parent))


def main():
    try:
        from tui.main import main as tui_main
    except ImportError as e:
        print(f"❌ Failed to import viewer: {e}")
        print("   Make sure textual is installed: pip install textual")
        return 1

    tui_main()
    return 0


if __name__ == "__main__":
    sys.exit(main())
