#!/usr/bin/env python3
"""
Warranty Store Initialization Script
====================================

Create the warranty tables and check that the configured ledger contract
is reachable and deployed.

Usage:
    python scripts/init_database.py
    python scripts/init_database.py --skip-ledger
    python scripts/init_database.py --ledger-only

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def init_tables() -> bool:
    """Create the warranty tables."""
    from sqlalchemy.exc import SQLAlchemyError

    # Registers the ORM model on the shared metadata
    import services.warranty.models  # noqa: F401
    from shared.database import PostgresClient, create_tables

    engine = PostgresClient.get_engine()
    try:
        await create_tables(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.error("table_creation_failed", error=str(e), dialect=engine.dialect.name)
        return False
    finally:
        await PostgresClient.close()

    logger.info("tables_created", dialect=engine.dialect.name)
    return True


async def check_ledger() -> bool:
    """Connect to the ledger and verify the contract is deployed."""
    from shared.blockchain import LedgerError, get_ledger_client

    try:
        ledger = get_ledger_client()
        await ledger.connect()
        health = await ledger.health_check()
        await ledger.disconnect()
    except (LedgerError, ValueError) as e:
        logger.error("ledger_check_failed", error=str(e))
        return False

    logger.info(
        "ledger_checked",
        mode=health.get("mode"),
        status=health.get("status"),
        contract=health.get("contract"),
        deployed=health.get("deployed"),
    )
    return health.get("status") == "healthy" and bool(health.get("deployed"))


async def main(args: argparse.Namespace) -> int:
    """Main initialization function."""
    results: dict[str, bool] = {}

    if not args.ledger_only:
        results["tables"] = await init_tables()

    if not args.skip_ledger:
        results["ledger"] = await check_ledger()

    failed = [name for name, ok in results.items() if not ok]
    if failed:
        logger.error("initialization_failed", failed=failed)
        return 1

    logger.info("initialization_complete", steps=list(results))
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize the Digital Warranty store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--skip-ledger",
        action="store_true",
        help="Only create tables",
    )
    group.add_argument(
        "--ledger-only",
        action="store_true",
        help="Only check the ledger contract",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
