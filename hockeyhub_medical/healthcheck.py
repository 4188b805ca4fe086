#!/usr/bin/env python3
"""
Container health check for the medical service database.
Opens a pool from the environment, runs ``SELECT 1`` and exits 0 or 1.
"""

import argparse
import asyncio
import sys

from .config import DEFAULT_SERVICE, database_params
from .database import connect


async def check_database(service: str) -> bool:
    """Check the database of one service."""
    gateway = await connect(database_params(service), service)
    try:
        return await gateway.health_check()
    finally:
        await gateway.close()


def main(argv=None):
    """Main health check function."""
    parser = argparse.ArgumentParser(description='Check the database of a HockeyHub service')
    parser.add_argument('--service', default=DEFAULT_SERVICE,
                        help='environment prefix of the service, e.g. MEDICAL or TRAINING')
    args = parser.parse_args(argv)

    if asyncio.run(check_database(args.service)):
        print(f"Health check passed: {args.service} database is healthy")
        sys.exit(0)
    else:
        print(f"Health check failed: {args.service} database is unavailable")
        sys.exit(1)


if __name__ == '__main__':
    main()
