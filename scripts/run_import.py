# WORKFLOW: Command-line runner for a single workspace archive import.
# Used by: Operators, cron jobs, local testing
# Functions:
# 1. parse_args() - Archive URL, optional batch id, optional table creation
# 2. main() - Build the configured pipeline, run it once, print the report
#
# Run flow: Archive URL -> ImportPipeline.run() -> Notifier -> Report on stdout
# Exits with status 1 when the import was rolled back.

"""
Run one workspace archive import from the command line.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from db.session import init_db  # noqa: E402
from etl.pipeline import ImportRequest, create_import_pipeline  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import workspaces from a remote ZIP archive")
    parser.add_argument("archive_url", help="Public URL of the ZIP archive")
    parser.add_argument("--batch-id", help="Identity used to correlate notifications")
    parser.add_argument("--init-db", action="store_true", help="Create database tables before importing")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.init_db:
        init_db()

    request = ImportRequest(archive_url=args.archive_url, batch_id=args.batch_id) if args.batch_id \
        else ImportRequest(archive_url=args.archive_url)

    report = create_import_pipeline().run(request)
    print(json.dumps(asdict(report), indent=2))

    return 0 if report.committed else 1


if __name__ == "__main__":
    sys.exit(main())
