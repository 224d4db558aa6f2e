"""
====================================================
Command-line entry point for PostgreSQL sandboxes.
====================================================

Runs the sandbox lifecycle by hand, outside a test run: handy for warming
the template in CI before the test job starts, for resetting a local
database, or for checking what the server currently holds.

Usage:
    # Build the template from the primary database (no-op if it exists)
    python main.py --prepare

    # Reset the primary database from the template
    python main.py --rebuild

    # Show primary/template state
    python main.py --status

    # Drop the template so the next --prepare builds a fresh one
    python main.py --drop-template

    # Target an application URL instead of POSTGRES_* / SANDBOX_PRIMARY_DB
    python main.py --prepare --url postgresql://app@localhost:5432/app

Exit Codes:
    0: Success
    1: Operation failed
    2: Invalid configuration
    130: User interrupt (Ctrl+C)
"""

import argparse
import sys
from typing import Optional, Sequence

from core.config import config
from core.logger import get_logger, setup_logging
from sandbox.exceptions import ConfigurationError, SandboxError
from sandbox.provider import PostgresSandboxProvider
from utils.database_utils import DatabaseConnectionError, wait_for_database

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PostgreSQL template-database sandbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Warm the template once, then reset before each test job
  python main.py --prepare
  python main.py --rebuild

  # Start over with a new baseline
  python main.py --drop-template --prepare

Configuration comes from POSTGRES_* and SANDBOX_* environment variables
(or a .env file in the working directory); see core/config.py.
        """
    )
    
    parser.add_argument(
        '--prepare',
        action='store_true',
        help='Build the template database from the primary database'
    )
    parser.add_argument(
        '--rebuild',
        action='store_true',
        help='Drop the primary database and clone it from the template'
    )
    parser.add_argument(
        '--status',
        action='store_true',
        help='Print the state of the primary and template databases'
    )
    parser.add_argument(
        '--drop-template',
        action='store_true',
        help='Drop the template database (runs before --prepare)'
    )
    parser.add_argument(
        '--url',
        type=str,
        default=None,
        help='Application database URL (overrides host, port and primary database)'
    )
    parser.add_argument(
        '--wait',
        action='store_true',
        help='Wait for PostgreSQL to accept connections first'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging (DEBUG level)'
    )
    return parser


def create_provider(url: Optional[str] = None) -> PostgresSandboxProvider:
    """Build the provider from --url or from environment configuration."""
    return PostgresSandboxProvider.from_env(database_url=url)


def print_status(status: dict) -> None:
    logger.info(f"Primary database:  {status['primary_database']}")
    logger.info(f"  exists:          {status['primary_exists']}")
    logger.info(f"  is template:     {status['primary_is_template']}")
    logger.info(f"  other sessions:  {status['primary_sessions']}")
    logger.info(f"Template database: {status['template_database']}")
    logger.info(f"  exists:          {status['template_exists']}")
    logger.info(f"  is template:     {status['template_is_template']}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Command-line interface for the sandbox lifecycle.
    
    Operations run in a fixed order: --drop-template, --prepare, --rebuild,
    --status.
    
    Args:
        argv: Arguments to parse (defaults to sys.argv[1:])
        
    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    
    try:
        log_level = 'DEBUG' if args.verbose else config.sandbox.log_level
    except ConfigurationError as e:
        setup_logging()
        logger.error(f"❌ Invalid configuration: {e}")
        return 2
    setup_logging(log_level=log_level)
    
    if not (args.prepare or args.rebuild or args.status or args.drop_template):
        parser.print_help()
        logger.warning("⚠️  No operation specified. Use --prepare, --rebuild, --status or --drop-template.")
        return 1
    
    try:
        provider = create_provider(args.url)
    except ConfigurationError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        return 2
    
    try:
        if args.wait:
            wait_for_database(
                host=provider.config.host,
                port=provider.config.port,
                user=provider.config.admin_user,
                password=provider.config.admin_password,
                database=provider.config.admin_database
            )
        
        if args.drop_template:
            if provider.discard_template():
                logger.info(f"✅ Dropped template {provider.config.template_database}")
            else:
                logger.info(f"Template {provider.config.template_database} did not exist")
        
        if args.prepare:
            provider.prepare()
            logger.info(f"✅ Template {provider.config.template_database} is ready")
        
        if args.rebuild:
            provider.rebuild()
            logger.info(
                f"✅ Rebuilt {provider.config.primary_database} "
                f"from {provider.config.template_database}"
            )
        
        if args.status:
            print_status(provider.status())
        
        return 0
        
    except (SandboxError, DatabaseConnectionError) as e:
        logger.error(f"❌ Sandbox operation failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("⚠️  Operation interrupted by user")
        return 130
    finally:
        provider.close()


if __name__ == '__main__':
    sys.exit(main())
