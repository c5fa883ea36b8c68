"""
Officer report parser.

Turns the officer's markdown report into a ParsedReport. Parsing is a pure
function of the report text and the criterion list: no I/O, no shared state,
and no exceptions for any report content.
"""

import logging
from typing import Optional, Sequence, Union

from ...core.criteria import get_criteria
from ...core.models import (
    CriterionDefinition,
    ParsedReport,
    VisaType,
    rating_for_score,
)
from .extractors import (
    STRENGTH_KEYWORDS,
    WEAKNESS_KEYWORDS,
    extract_criteria_scores,
    extract_evidence_quality,
    extract_list_items,
    extract_probabilities,
    extract_recommendations,
    extract_rfe_predictions,
    extract_score,
)


logger = logging.getLogger(__name__)

CriteriaSpec = Union[VisaType, str, Sequence[CriterionDefinition]]


def _resolve_criteria(criteria: CriteriaSpec) -> Sequence[CriterionDefinition]:
    if isinstance(criteria, (VisaType, str)):
        return get_criteria(criteria)
    return list(criteria)


def parse_officer_report(report: Optional[str], criteria: CriteriaSpec) -> ParsedReport:
    """
    Parse an officer report into structured scores.

    Args:
        report: Markdown report produced by the generative backend
        criteria: Visa type, or the ordered criterion definitions to score

    Returns:
        Fully populated ParsedReport; missing fields take their defaults

    Raises:
        UnknownVisaTypeError: If ``criteria`` names an unsupported visa type
    """
    definitions = _resolve_criteria(criteria)
    text = (report or "").replace("\r\n", "\n")

    overall_score = extract_score(text)
    approval, rfe, denial = extract_probabilities(text, overall_score)

    parsed = ParsedReport(
        overall_score=overall_score,
        overall_rating=rating_for_score(overall_score),
        approval_probability=approval,
        rfe_probability=rfe,
        denial_risk=denial,
        criteria_scores=extract_criteria_scores(text, definitions),
        evidence_quality=extract_evidence_quality(text),
        rfe_predictions=extract_rfe_predictions(text),
        weaknesses=extract_list_items(text, *WEAKNESS_KEYWORDS),
        strengths=extract_list_items(text, *STRENGTH_KEYWORDS),
        recommendations=extract_recommendations(text),
        full_report=report or "",
    )

    logger.debug(
        f"Parsed report: score {parsed.overall_score} ({parsed.overall_rating.value}), "
        f"{len(parsed.criteria_scores)} criteria, {len(parsed.rfe_predictions)} RFE predictions"
    )
    return parsed


def summarize_report(parsed: ParsedReport) -> str:
    """Short plain-text summary used to ground the officer chat."""
    lines = [
        f"Overall Score: {parsed.overall_score}/100 ({parsed.overall_rating.value})",
        f"Approval Probability: {parsed.approval_probability}%",
        f"RFE Probability: {parsed.rfe_probability}%",
        f"Denial Risk: {parsed.denial_risk}%",
        "",
        "Criteria:",
    ]
    for criterion in parsed.criteria_scores:
        lines.append(
            f"- Criterion {criterion.criterion_number} ({criterion.criterion_name}): "
            f"{criterion.rating.value}, {criterion.score}/100"
        )

    if parsed.weaknesses:
        lines.append("")
        lines.append("Key Concerns:")
        lines.extend(f"- {item}" for item in parsed.weaknesses[:5])

    if parsed.recommendations.critical:
        lines.append("")
        lines.append("Critical Actions:")
        lines.extend(f"- {item}" for item in parsed.recommendations.critical[:5])

    return "\n".join(lines)
