#!/usr/bin/env python
"""
Scoring API Server Runner.

Usage:
    python run_api.py

Or with PM2:
    pm2 start run_api.py --interpreter python
"""

import logging
import os
import sys

import uvicorn

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


def main():
    """Run the scoring API server."""
    host = os.getenv("SCORING_API_HOST", "0.0.0.0")
    port = int(os.getenv("SCORING_API_PORT", os.getenv("PORT", "8000")))
    reload = os.getenv("ENVIRONMENT", "production") == "development"

    logger.info(f"Starting Scoring API on {host}:{port}")

    try:
        uvicorn.run(
            "questionnaire_scoring.api:app",
            host=host,
            port=port,
            reload=reload,
            log_level="info",
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start scoring API: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
