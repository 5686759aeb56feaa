#!/usr/bin/env python3
"""
Republic Worker
===============

Runs the three castes headless (no HTTP surface) until SIGINT/SIGTERM:
- Reasoners: hypotheses and judgements
- Investigators: forensics, alerts, ring patrols
- Pricers: prediction markets

Usage:
    python run_republic.py
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / '.env')

from config import get_settings
from services.container import build_services

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s [republic] %(levelname)s: %(message)s'
)
log = logging.getLogger('republic')


async def main():
    services = build_services(settings)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await services.engine.awaken()
    log.info("🏛️ Republic running, Ctrl+C to stop")

    await stop.wait()

    log.info("Shutting down...")
    await services.close()

    vitals = services.engine.vitals
    log.info(
        f"Done. Analysed: {vitals.papers_analysed}, Discovered: {vitals.papers_discovered}, "
        f"Markets: {vitals.markets_created}, Alerts: {vitals.alerts_raised}, Errors: {vitals.errors}"
    )


if __name__ == "__main__":
    asyncio.run(main())
