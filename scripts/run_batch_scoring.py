"""
Run Batch Priority Scoring

Scores every active store and writes the ranked table to CSV.
"""
import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

# Add project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from config.settings import settings
from src.compliance_engine.db.repository import PeakPeriodRepository, StoreSnapshotRepository
from src.compliance_engine.db.session import get_db_session
from src.compliance_engine.models.domain import PriorityContext
from src.compliance_engine.pipelines.batch_scoring import BatchScoringPipeline
from src.compliance_engine.utils.logger import bind_run_context, clear_run_context, get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Rank stores by compliance priority")
    parser.add_argument("--output", default="priority_stores.csv", help="CSV file to write")
    parser.add_argument("--zone", default=None, help="Only score stores in this zone")
    parser.add_argument(
        "--orange-threshold-days",
        type=int,
        default=settings.orange_threshold_days,
        help="Days before expiry at which items turn ORANGE",
    )
    parser.add_argument("--workers", type=int, default=settings.batch_max_workers)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging()
    now = datetime.now(timezone.utc)
    bind_run_context(run_id=uuid4().hex, evaluated_at=now.isoformat())

    try:
        with get_db_session() as session:
            stores = StoreSnapshotRepository().load_active_stores(session, zone=args.zone)
            peak_periods = PeakPeriodRepository().active_periods(session, on=now.date())

        context = PriorityContext(
            now=now,
            peak_periods=peak_periods,
            orange_threshold_days=args.orange_threshold_days,
        )
        results_df = BatchScoringPipeline(max_workers=args.workers).run(stores, context)
    finally:
        clear_run_context()

    if results_df.empty:
        logger.warning("no_results_generated")
        return 1

    results_df.to_csv(args.output, index=False)
    logger.info("priority_report_written", path=args.output, stores=len(results_df))
    return 0


if __name__ == "__main__":
    sys.exit(main())
