"""
Pipelines Package

Batch orchestration over the scoring engine.
"""
from src.compliance_engine.pipelines.batch_scoring import BatchScoringPipeline

__all__ = [
    "BatchScoringPipeline",
]
