"""
Batch priority scoring across the whole portfolio.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional

import pandas as pd

from config.settings import settings
from src.compliance_engine.errors import ComplianceEngineError
from src.compliance_engine.models.domain import PriorityContext, Store
from src.compliance_engine.scoring.priority import PriorityScorer
from src.compliance_engine.scoring.status import classify_store
from src.compliance_engine.utils.logger import get_logger

logger = get_logger(__name__)

RESULT_COLUMNS = [
    "store_code",
    "store_id",
    "zone",
    "overall_status",
    "priority_score",
    "priority_reasons",
    "error",
]


class BatchScoringPipeline:
    """
    Scores every store on a worker pool and collects a ranked table:
    1. Fan out one scoring task per store
    2. Record per-store failures instead of aborting the batch
    3. Rank by score descending, then store code
    """

    def __init__(self, scorer: Optional[PriorityScorer] = None, max_workers: Optional[int] = None):
        self.scorer = scorer or PriorityScorer()
        self.max_workers = max_workers or settings.batch_max_workers

    def run(self, stores: Iterable[Store], context: PriorityContext) -> pd.DataFrame:
        """Run the batch and return one row per store."""
        stores = list(stores)
        logger.info("starting_batch_scoring", stores=len(stores), workers=self.max_workers)

        rows: List[dict] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._score_store, store, context): store for store in stores}
            for future in as_completed(futures):
                rows.append(future.result())

        if not rows:
            logger.warning("no_stores_for_scoring")
            return pd.DataFrame(columns=RESULT_COLUMNS)

        df = pd.DataFrame(rows, columns=RESULT_COLUMNS)
        df = df.sort_values(
            by=["priority_score", "store_code"],
            ascending=[False, True],
            na_position="last",
            kind="mergesort",
        ).reset_index(drop=True)

        failed = int(df["error"].notna().sum())
        logger.info("batch_scoring_complete", count=len(df), failed=failed)
        return df

    def _score_store(self, store: Store, context: PriorityContext) -> dict:
        row = {
            "store_code": store.store_code,
            "store_id": store.id,
            "zone": store.zone,
            "overall_status": None,
            "priority_score": None,
            "priority_reasons": [],
            "error": None,
        }
        try:
            result = self.scorer.score(store, context)
            status = classify_store(store.compliance_items, context.now, context.orange_threshold_days)
        except ComplianceEngineError as e:
            logger.warning(
                "store_scoring_failed",
                store_code=store.store_code,
                error=str(e),
                error_type=type(e).__name__,
            )
            row["error"] = str(e)
            return row

        row.update(
            overall_status=status.value,
            priority_score=result.score,
            priority_reasons=result.reasons,
        )
        return row
