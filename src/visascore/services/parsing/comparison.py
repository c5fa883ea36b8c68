"""
Before/after comparison of two parsed officer reports.

Used to show how an RFE response moved a petition: headline deltas,
per-criterion movement, resolved weaknesses and new strengths.
"""

from typing import List

from ...core.models import (
    CriterionChange,
    CriterionScore,
    CriterionSnapshot,
    MetricChange,
    ParsedReport,
    ReportComparison,
)


EXCELLENT_SUMMARY = "Excellent improvement! The RFE response significantly strengthened the petition."
GOOD_SUMMARY = "Good progress. The RFE response addressed several key concerns."
MODEST_SUMMARY = "Modest improvement. Consider addressing remaining weaknesses."
UNCHANGED_SUMMARY = "No significant change. The RFE response may not have addressed core issues."
DECREASED_SUMMARY = "Scores decreased. Review the RFE response for potential issues introduced."


def metric_change(before: int, after: int, lower_is_better: bool = False) -> MetricChange:
    improved = after < before if lower_is_better else after > before
    return MetricChange(before=before, after=after, change=after - before, improved=improved)


def compare_criteria(before: List[CriterionScore], after: List[CriterionScore]) -> List[CriterionChange]:
    """
    Criteria present in both reports, largest improvement first.

    Names come from the earlier report; ties keep the earlier report's order.
    """
    after_by_number = {c.criterion_number: c for c in after}

    changes = []
    for earlier in before:
        later = after_by_number.get(earlier.criterion_number)
        if later is None:
            continue
        changes.append(CriterionChange(
            criterion_number=earlier.criterion_number,
            criterion_name=earlier.criterion_name,
            before=CriterionSnapshot(rating=earlier.rating, score=earlier.score),
            after=CriterionSnapshot(rating=later.rating, score=later.score),
            change=later.score - earlier.score,
            improved=later.score > earlier.score,
        ))

    return sorted(changes, key=lambda c: c.change, reverse=True)


def find_resolved_items(before: List[str], after: List[str]) -> List[str]:
    """Items of ``before`` no longer in ``after``, ignoring case."""
    remaining = {item.lower() for item in after}
    return [item for item in before if item.lower() not in remaining]


def find_new_items(before: List[str], after: List[str]) -> List[str]:
    """Items of ``after`` not already in ``before``, ignoring case."""
    existing = {item.lower() for item in before}
    return [item for item in after if item.lower() not in existing]


def comparison_summary(before: ParsedReport, after: ParsedReport) -> str:
    score_diff = after.overall_score - before.overall_score
    approval_diff = after.approval_probability - before.approval_probability

    if score_diff > 20 and approval_diff > 20:
        return EXCELLENT_SUMMARY
    if score_diff > 10 or approval_diff > 10:
        return GOOD_SUMMARY
    if score_diff > 0:
        return MODEST_SUMMARY
    if score_diff == 0:
        return UNCHANGED_SUMMARY
    return DECREASED_SUMMARY


def compare_reports(before: ParsedReport, after: ParsedReport) -> ReportComparison:
    """Compare an earlier report with a later one."""
    return ReportComparison(
        overall_score=metric_change(before.overall_score, after.overall_score),
        approval_probability=metric_change(before.approval_probability, after.approval_probability),
        rfe_probability=metric_change(before.rfe_probability, after.rfe_probability, lower_is_better=True),
        denial_risk=metric_change(before.denial_risk, after.denial_risk, lower_is_better=True),
        criteria_comparison=compare_criteria(before.criteria_scores, after.criteria_scores),
        weaknesses_resolved=find_resolved_items(before.weaknesses, after.weaknesses),
        new_strengths=find_new_items(before.strengths, after.strengths),
        summary=comparison_summary(before, after),
    )
