#!/usr/bin/env python3
"""
Run one mailbox sync from the command line (service account credentials).

Usage:
    python scripts/run_sync.py [access_token]

Example:
    GOOGLE_SERVICE_ACCOUNT_JSON=/secrets/sa.json python scripts/run_sync.py
"""
import sys
import os
import asyncio

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from packages.common.config import get_settings
from packages.common.log_config import configure_logging
from services.worker.tasks.sync_mailbox import run_sync


async def main():
    configure_logging(get_settings().log_level)
    access_token = sys.argv[1] if len(sys.argv) > 1 else None

    print("Syncing mailbox...")
    outcome = await run_sync(access_token)

    for message in outcome["progress"]:
        print(f"  {message}")

    print("\nResults:")
    if not outcome["results"]:
        print("  Nothing pending")
    for result in outcome["results"]:
        if result["status"] == "success":
            print(f"  {result['source_id']}: ok (ticket {result['ticket_id']})")
        else:
            print(f"  {result['source_id']}: ERROR {result['error']}")

if __name__ == "__main__":
    asyncio.run(main())
