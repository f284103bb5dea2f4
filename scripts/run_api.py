#!/usr/bin/env python3
"""
Start the viewer HTTP API with uvicorn.
"""

import sys
from pathlib import Path

# Load environment variables from .env file first
import dotenv
dotenv.load_dotenv()

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from faiss_viewer.core import config


def main():
    issues = config.validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    print(f"🚀 Starting FAISS Bundle Viewer API on {config.API_HOST}:{config.API_PORT}")
    uvicorn.run("faiss_viewer.api.main:app", host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    main()
