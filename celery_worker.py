#!/usr/bin/env python3
"""
Celery worker script for the storefront platform.
Runs the worker with an embedded beat scheduler for the custom-domain refresh.
"""

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    from core.celery import celery_app

    # Start Celery worker (with beat for the periodic domain sweep)
    celery_app.start([
        "worker",
        "--beat",
        "--loglevel=info",
        "--concurrency=2",
        "--without-gossip",
        "--without-mingle",
        "--without-heartbeat",
    ])
