"""Command line entry point"""

import argparse
import logging
import sys
from typing import List, Optional

from mantis2gitlab.config import Settings
from mantis2gitlab.exceptions import MigrationError
from mantis2gitlab.services.migration import Migration

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mantis2gitlab",
        description="Import a Mantis CSV export into a GitLab project, keeping issue numbers.",
    )
    parser.add_argument("-i", "--input", dest="input_file", help="CSV file exported from Mantis (Example: issues.csv)")
    parser.add_argument("-c", "--config", dest="config_file", help="Configuration file (Example: config.json)")
    parser.add_argument("-g", "--gitlab-url", dest="gitlab_url", help="GitLab URL (Example: https://gitlab.com)")
    parser.add_argument("-p", "--project", help="GitLab project including namespace (Example: mycorp/myproj)")
    parser.add_argument("-t", "--token", dest="private_token", help="An admin user's private token")
    parser.add_argument("-s", "--sudo", help="The username performing the import (Example: bob)")
    parser.add_argument("-f", "--from", dest="from_id", type=int, help="The first issue # to import (Example: 123)")
    parser.add_argument(
        "-n", "--dry-run", dest="dry_run", action="store_true", default=None,
        help="Dry run, just output actions that would be executed",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=None,
        help="Verbose output, print every step in detail",
    )
    parser.add_argument(
        "--remove-skipped", dest="remove_skipped", action="store_true", default=None,
        help='Remove GitLab issues titled "Skipped Mantis Issue ..." instead of importing',
    )
    parser.add_argument(
        "--fill-gaps", dest="fill_gaps", action="store_true", default=None,
        help="Create closed placeholder issues for numbers missing from the export",
    )
    return parser


def load_settings(argv: Optional[List[str]] = None) -> Settings:
    """Environment/.env settings, overridden by any flag given on the command line."""
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    return Settings(**overrides)


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.verbose else getattr(logging, settings.log_level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # python-gitlab/urllib3 are chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings(argv)
    configure_logging(settings)

    try:
        result = Migration(settings).run()
    except MigrationError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Done! {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
