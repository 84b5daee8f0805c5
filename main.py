"""
AR Engagement Intelligence — Entry Point
==========================================

Run: python main.py [--input FILE] [--now ISO] [--sort-by COLUMN] [--asc]

Passes all arguments through to scripts/engagement_analyzer.py.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger("ar-engagement")

if __name__ == "__main__":
    from scripts.engagement_analyzer import main

    logger.info("=" * 60)
    logger.info("  AR ENGAGEMENT — Buying-Intent Scoring")
    logger.info("=" * 60)
    logger.info(f"  Environment : {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"  Config      : {os.getenv('ENGAGEMENT_CONFIG', 'configs/engagement.yaml')}")
    logger.info("=" * 60)

    sys.exit(main(sys.argv[1:]))
