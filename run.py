#!/usr/bin/env python3
"""
Wealth Ledger Entry Point

Starts the FastAPI server with the asset ledger and yield engine.
"""

import sys

from wealth_ledger.api import run_server
from wealth_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Wealth Ledger...")
    print(f"Storage: {config.storage_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Wealth Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
