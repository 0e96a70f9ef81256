"""
Audit Scoring Engine

Section and overall compliance percentages for a submitted audit.

Per section:
    score = YES / (YES + NO) x 100, N/A excluded from both sides

Overall score is the weighted mean of section scores, counting only sections
that received at least one YES/NO answer. Comment-only sections carry no
weight at all rather than dragging the mean toward zero.

Any NO on a critical question escalates the audit to CRITICAL regardless of
its score.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from src.compliance_engine.errors import InvalidInputError
from src.compliance_engine.models.domain import (
    ActionSeverity,
    ActionStatus,
    AuditQuestion,
    AuditResponse,
    AuditResult,
    ComplianceCategory,
    RiskLevel,
    normalize_severity,
)
from src.compliance_engine.scoring.status import require_datetime
from src.compliance_engine.utils.logger import get_logger
from src.compliance_engine.utils.rounding import round_half_up

logger = get_logger(__name__)

# Bumped whenever the serialised shape of AuditScoreResult changes
AUDIT_SCORE_SCHEMA_VERSION = 1

HIGH_RISK_THRESHOLD = 60.0
MEDIUM_RISK_THRESHOLD = 80.0

DUE_DAYS_BY_SEVERITY = {
    ActionSeverity.CRITICAL: 3,
    ActionSeverity.HIGH: 7,
    ActionSeverity.MEDIUM: 14,
    ActionSeverity.LOW: 30,
}
DEFAULT_DUE_DAYS = 14


@dataclass
class SectionScore:
    """Score of one audit section."""
    section_id: str
    name: str
    score: float
    yes: int
    no: int
    na: int
    total: int
    weight: int
    critical_failures: int
    category: Optional[ComplianceCategory] = None

    @property
    def is_scorable(self) -> bool:
        return self.yes + self.no > 0

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["category"] = self.category.value if self.category else None
        return data


@dataclass
class AuditScoreResult:
    """
    Final audit score.

    Attributes:
        overall_score: Weighted average of scorable sections (0-100, 1 decimal)
        section_scores: Per-section breakdown, in template order
        total_questions: Questions on the audit template
        answered_questions: Questions with a YES/NO/N/A answer
        completion_percentage: answered / total x 100 (1 decimal)
        critical_failures: NO answers on critical questions
        risk_level: CRITICAL, HIGH, MEDIUM or LOW
    """
    overall_score: float
    section_scores: List[SectionScore]
    total_questions: int
    answered_questions: int
    completion_percentage: float
    critical_failures: int
    risk_level: RiskLevel
    schema_version: int = AUDIT_SCORE_SCHEMA_VERSION

    @property
    def has_critical_failure(self) -> bool:
        return self.critical_failures > 0

    def to_dict(self) -> Dict:
        return {
            "schema_version": self.schema_version,
            "overall_score": self.overall_score,
            "section_scores": [section.to_dict() for section in self.section_scores],
            "total_questions": self.total_questions,
            "answered_questions": self.answered_questions,
            "completion_percentage": self.completion_percentage,
            "critical_failures": self.critical_failures,
            "has_critical_failure": self.has_critical_failure,
            "risk_level": self.risk_level.value,
        }


@dataclass
class CorrectiveActionDraft:
    """Corrective action to be created for a non-compliant answer."""
    question_id: str
    title: str
    description: str
    severity: Union[ActionSeverity, str]
    due_date: datetime
    category: Optional[ComplianceCategory] = None
    status: ActionStatus = field(default=ActionStatus.OPEN)

    def to_dict(self) -> Dict:
        return {
            "question_id": self.question_id,
            "title": self.title,
            "description": self.description,
            "severity": _label(self.severity),
            "due_date": self.due_date.isoformat(),
            "category": _label(self.category),
            "status": self.status.value,
        }


class AuditScorer:
    """Scores a single audit from its template questions and submitted responses."""

    def score(
        self,
        questions: Iterable[AuditQuestion],
        responses: Iterable[AuditResponse],
    ) -> AuditScoreResult:
        """
        Calculate section and overall scores.

        Args:
            questions: Every question on the audit template
            responses: Submitted answers (unanswered questions may be omitted)

        Returns:
            AuditScoreResult

        Raises:
            InvalidInputError: a response references a question not on the template
        """
        questions = list(questions)
        answers = _index_answers(questions, responses)

        sections: Dict[str, List[AuditQuestion]] = {}
        for question in questions:
            sections.setdefault(question.section_id, []).append(question)

        section_scores = [
            self._score_section(section_id, section_questions, answers)
            for section_id, section_questions in sections.items()
        ]

        scorable = [section for section in section_scores if section.is_scorable]
        total_weight = sum(section.weight for section in scorable)
        weighted_sum = sum(section.score * section.weight for section in scorable)
        overall = weighted_sum / total_weight if total_weight > 0 else 0.0

        critical_failures = sum(section.critical_failures for section in section_scores)
        answered = sum(1 for result in answers.values() if result is not None)
        completion = answered / len(questions) * 100 if questions else 0.0

        result = AuditScoreResult(
            overall_score=round_half_up(overall, 1),
            section_scores=section_scores,
            total_questions=len(questions),
            answered_questions=answered,
            completion_percentage=round_half_up(completion, 1),
            critical_failures=critical_failures,
            # judged on the unrounded score, so a displayed 60.0 can still be HIGH
            risk_level=self._risk_level(overall, critical_failures),
        )

        logger.debug(
            "audit_scored",
            overall_score=result.overall_score,
            risk_level=result.risk_level.value,
            critical_failures=critical_failures,
            scorable_sections=len(scorable),
        )

        return result

    @staticmethod
    def _score_section(
        section_id: str,
        questions: List[AuditQuestion],
        answers: Dict[str, Optional[AuditResult]],
    ) -> SectionScore:
        yes = no = na = critical = 0
        for question in questions:
            result = answers.get(question.id)
            if result == AuditResult.YES:
                yes += 1
            elif result == AuditResult.NO:
                no += 1
                if question.critical:
                    critical += 1
            elif result == AuditResult.NA:
                na += 1

        denominator = yes + no
        score = yes / denominator * 100 if denominator > 0 else 0.0
        first = questions[0]

        return SectionScore(
            section_id=section_id,
            name=first.section_name,
            score=round_half_up(score, 1),
            yes=yes,
            no=no,
            na=na,
            total=len(questions),
            weight=first.section_weight,
            critical_failures=critical,
            category=first.category,
        )

    @staticmethod
    def _risk_level(overall_score: float, critical_failures: int) -> RiskLevel:
        if critical_failures > 0:
            return RiskLevel.CRITICAL
        if overall_score < HIGH_RISK_THRESHOLD:
            return RiskLevel.HIGH
        if overall_score < MEDIUM_RISK_THRESHOLD:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW


def _index_answers(
    questions: List[AuditQuestion],
    responses: Iterable[AuditResponse],
) -> Dict[str, Optional[AuditResult]]:
    known = {question.id for question in questions}
    answers: Dict[str, Optional[AuditResult]] = {}
    for response in responses:
        if response.question_id not in known:
            raise InvalidInputError("question_id", response.question_id, "not on the audit template")
        answers[response.question_id] = response.result
    return answers


def due_date_for_severity(severity, now: datetime) -> datetime:
    """
    Due date for an auto-created corrective action.

    CRITICAL +3 days, HIGH +7, MEDIUM +14, LOW +30; anything else +14.
    """
    require_datetime(now)
    key = normalize_severity(severity)
    return now + timedelta(days=DUE_DAYS_BY_SEVERITY.get(key, DEFAULT_DUE_DAYS))


def draft_corrective_actions(
    questions: Iterable[AuditQuestion],
    responses: Iterable[AuditResponse],
    now: datetime,
) -> List[CorrectiveActionDraft]:
    """
    One corrective action per NO answer.

    The action takes the response's severity (MEDIUM when none was given,
    unknown labels kept as-is and due in 14 days) and the question's category
    tag.
    """
    require_datetime(now)
    by_id = {question.id: question for question in questions}
    drafts = []
    for response in responses:
        if response.result != AuditResult.NO:
            continue
        question = by_id.get(response.question_id)
        if question is None:
            raise InvalidInputError("question_id", response.question_id, "not on the audit template")
        severity = response.severity or ActionSeverity.MEDIUM
        drafts.append(
            CorrectiveActionDraft(
                question_id=question.id,
                title=f"{question.section_name}: {question.text}",
                description=response.notes or "Non-compliance identified during audit",
                severity=severity,
                due_date=due_date_for_severity(severity, now),
                category=question.category,
            )
        )
    return drafts


def requires_escalation(result: AuditScoreResult) -> bool:
    return result.has_critical_failure or result.overall_score < HIGH_RISK_THRESHOLD


def audit_summary(result: AuditScoreResult) -> str:
    """One-line summary of an audit outcome for reports."""
    score_text = f"{result.overall_score:.1f}%"

    if result.risk_level == RiskLevel.CRITICAL:
        critical_text = f" with {result.critical_failures} critical failure(s)"
        return f"Critical compliance issues identified{critical_text}. Immediate action required."
    if result.risk_level == RiskLevel.HIGH:
        return f"Compliance score below acceptable threshold ({score_text}). Corrective actions required."
    if result.risk_level == RiskLevel.MEDIUM:
        return f"Some compliance issues noted ({score_text}). Recommended improvements required."
    return f"Good compliance standing ({score_text}). Continue monitoring."


def _label(value) -> Optional[str]:
    if value is None:
        return None
    return value.value if isinstance(value, Enum) else str(value)
