#!/usr/bin/env python3
"""
Delete access tokens that were used or expired longer ago than the retention window.
Meant to be run by an external scheduler (cron, k8s CronJob).
Run from the project root: python -m scripts.cleanup_access_tokens [--hours N] [--dry-run]
"""
import argparse

from groupshare.core.config import settings
from groupshare.core.logging import configure_logging
from groupshare.db.session import SessionLocal
from groupshare.services.cleanup.service import AccessTokenCleanupService


def main(argv: list[str] | None = None) -> dict:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--hours", type=int, default=settings.access_token_retention_hours)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    configure_logging()
    db = SessionLocal()
    try:
        service = AccessTokenCleanupService(db)
        result = service.preview(args.hours) if args.dry_run else service.cleanup(args.hours)
    finally:
        db.close()
    print(result)
    return result


if __name__ == "__main__":
    main()
