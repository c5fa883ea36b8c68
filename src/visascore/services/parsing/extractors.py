"""
Field extractors for officer reports.

Each extractor mines one part of the free-text markdown report produced by
the generative backend. None of them raise: when a pattern is missing they
fall back to a fixed default so that parsing always yields a complete record.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ...core.models import (
    CriterionDefinition,
    CriterionRating,
    CriterionScore,
    EvidenceAssessment,
    EvidenceQuality,
    EvidenceQualityTier,
    RFEPrediction,
    Recommendations,
)


logger = logging.getLogger(__name__)


# Overall score patterns, tried in order
TOTAL_ROW_PATTERN = re.compile(r'\*\*TOTAL\*\*[^|]*\|[^|]*\|[^|]*\|\s*\*?\*?(\d+)\s*/\s*100', re.IGNORECASE)
OVERALL_SCORE_PATTERN = re.compile(r'overall\s+score[:\s*|]*(\d+)', re.IGNORECASE)
BOLD_SCORE_PATTERN = re.compile(r'\*\*(\d+)\s*/\s*100\*\*')

APPROVAL_PATTERN = re.compile(r'approval\s+probability[:\s*|]*(\d+)\s*%', re.IGNORECASE)
RFE_PATTERN = re.compile(r'rfe\s+probability[:\s*|]*(\d+)\s*%', re.IGNORECASE)
DENIAL_PATTERN = re.compile(r'denial\s+risk[:\s*|]*(\d+)\s*%', re.IGNORECASE)

# Keyword fallback when no numeric score is present
KEYWORD_SCORES: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("strong approval", "approve"), 75),
    (("rfe likely",), 60),
    (("denial", "major revision"), 40),
)
DEFAULT_SCORE = 55

# (minimum score, approval probability, rfe probability)
PROBABILITY_BANDS: Tuple[Tuple[int, int, int], ...] = (
    (85, 85, 10),
    (70, 65, 25),
    (55, 40, 45),
    (40, 20, 50),
    (0, 10, 40),
)

RATING_SCORES: Dict[CriterionRating, int] = {
    CriterionRating.STRONG: 85,
    CriterionRating.ADEQUATE: 70,
    CriterionRating.WEAK: 50,
    CriterionRating.INSUFFICIENT: 30,
    CriterionRating.NOT_CLAIMED: 0,
}

QUALITY_BANDS: Tuple[Tuple[int, EvidenceQualityTier], ...] = (
    (80, EvidenceQualityTier.EXCELLENT),
    (65, EvidenceQualityTier.GOOD),
    (45, EvidenceQualityTier.FAIR),
)

# Next criterion heading or next top-level section ends a criterion block
CRITERION_END_PATTERN = re.compile(r'^[#*\s]*criterion\s*\d+|^#{1,2}\s', re.IGNORECASE | re.MULTILINE)
HEADING_PREFIX_PATTERN = re.compile(r'[#*\s]*')
RATING_PATTERN = re.compile(r'(?:my\s+rating|rating)[:\s*]*([^\n]+)', re.IGNORECASE)
CRITERION_SCORE_PATTERN = re.compile(r'(?:evidence\s+score|score)[:\s*]*(\d+)', re.IGNORECASE)
CONCERNS_PATTERN = re.compile(r'(?:my\s+concerns|concerns)[:\s*]*([^#]+?)(?=\n\s*\n|\*\*|\Z)', re.IGNORECASE)

EVIDENCE_CONCERNS_PATTERN = re.compile(r'evidence.*?concerns[:\s]*([^#]+)', re.IGNORECASE)

RFE_SECTION_PATTERN = re.compile(r'rfe\s+predictions?.*?(?=##|\Z)', re.IGNORECASE | re.DOTALL)
RFE_ROW_PATTERN = re.compile(r'\|\s*([^|\n]+)\|\s*(\d+)\s*%?\s*\|\s*([^|\n]+)\|')

BULLET_PATTERN = re.compile(r'^(?:[-*•]|\d+\.)')
BULLET_MARKER_PATTERN = re.compile(r'^[-*•\d.]+\s*')
MIN_BULLET_LENGTH = 6

WEAKNESS_KEYWORDS = ("RED FLAGS", "CONCERNS", "WEAKNESSES", "MY CONCERNS")
STRENGTH_KEYWORDS = ("STRENGTHS", "STRONG", "ACKNOWLEDGE")
CRITICAL_KEYWORDS = ("CRITICAL", "MUST DO", "REQUIRED")
HIGH_PRIORITY_KEYWORDS = ("HIGH PRIORITY", "SHOULD DO", "IMPORTANT")
RECOMMENDED_KEYWORDS = ("RECOMMENDED", "WOULD HELP", "SUGGESTED")


MAX_DIGITS = 9


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def to_int(digits: str) -> int:
    # Very long digit runs would trip the interpreter's int conversion limit
    if len(digits) > MAX_DIGITS:
        return 10 ** MAX_DIGITS
    return int(digits)


# Bullets and lists

def extract_bullet_points(text: str) -> List[str]:
    """
    Pull bullet items out of a block of text.

    A bullet is a line starting with ``-``, ``*``, ``•`` or ``<n>.``. The marker
    is stripped and items of five characters or fewer are dropped as noise.
    """
    items = []
    for line in text.split('\n'):
        trimmed = line.strip()
        if not BULLET_PATTERN.match(trimmed):
            continue

        content = BULLET_MARKER_PATTERN.sub('', trimmed, count=1).strip()
        if len(content) >= MIN_BULLET_LENGTH:
            items.append(content)

    return items


def extract_list_items(report: str, *keywords: str) -> List[str]:
    """
    Bullets under the first keyword that yields any.

    For each keyword in priority order, the text from its first occurrence up
    to the next ``##`` heading, a double blank line, or the end of the report
    is bullet-extracted.
    """
    for keyword in keywords:
        pattern = re.compile(re.escape(keyword) + r'.*?(?=##|\n\n\n|\Z)', re.IGNORECASE | re.DOTALL)
        match = pattern.search(report)
        if match:
            items = extract_bullet_points(match.group(0))
            if items:
                return items

    return []


def extract_recommendations(report: str) -> Recommendations:
    """Action items grouped by severity."""
    return Recommendations(
        critical=extract_list_items(report, *CRITICAL_KEYWORDS),
        high=extract_list_items(report, *HIGH_PRIORITY_KEYWORDS),
        recommended=extract_list_items(report, *RECOMMENDED_KEYWORDS),
    )


# Overall score and probabilities

def extract_score(report: str) -> int:
    """Locate the officer's bottom-line score, falling back to keyword heuristics."""
    for pattern in (TOTAL_ROW_PATTERN, OVERALL_SCORE_PATTERN, BOLD_SCORE_PATTERN):
        match = pattern.search(report)
        if match:
            return clamp(to_int(match.group(1)))

    lowered = report.lower()
    for phrases, score in KEYWORD_SCORES:
        if any(phrase in lowered for phrase in phrases):
            logger.debug(f"No numeric score found; keyword fallback gives {score}")
            return score

    logger.debug(f"No numeric score or verdict keywords found; using default {DEFAULT_SCORE}")
    return DEFAULT_SCORE


def approval_probability_for_score(score: int) -> int:
    for minimum, approval, _ in PROBABILITY_BANDS:
        if score >= minimum:
            return approval
    return PROBABILITY_BANDS[-1][1]


def rfe_probability_for_score(score: int) -> int:
    for minimum, _, rfe in PROBABILITY_BANDS:
        if score >= minimum:
            return rfe
    return PROBABILITY_BANDS[-1][2]


def _labeled_percentage(pattern: re.Pattern, report: str) -> Optional[int]:
    match = pattern.search(report)
    return clamp(to_int(match.group(1))) if match else None


def extract_probabilities(report: str, overall_score: int) -> Tuple[int, int, int]:
    """
    Approval, RFE and denial percentages.

    Stated values win; missing ones are derived from the overall score. A
    derived denial risk is the remainder ``100 - approval - rfe``, floored at 0.
    """
    approval = _labeled_percentage(APPROVAL_PATTERN, report)
    if approval is None:
        approval = approval_probability_for_score(overall_score)

    rfe = _labeled_percentage(RFE_PATTERN, report)
    if rfe is None:
        rfe = rfe_probability_for_score(overall_score)

    denial = _labeled_percentage(DENIAL_PATTERN, report)
    if denial is None:
        denial = max(0, 100 - approval - rfe)

    return approval, rfe, denial


# Criteria

def parse_rating(text: str) -> CriterionRating:
    """Map free text to the closest categorical rating by substring."""
    lowered = text.lower()
    for rating in (
        CriterionRating.STRONG,
        CriterionRating.ADEQUATE,
        CriterionRating.WEAK,
        CriterionRating.INSUFFICIENT,
    ):
        if rating.value.lower() in lowered:
            return rating
    return CriterionRating.NOT_CLAIMED


def rating_to_score(rating: CriterionRating) -> int:
    return RATING_SCORES[rating]


def score_to_quality(score: int) -> EvidenceQualityTier:
    for minimum, tier in QUALITY_BANDS:
        if score >= minimum:
            return tier
    return EvidenceQualityTier.POOR


def _section_from(report: str, mention: re.Match) -> str:
    rest = report[mention.end():]
    end = CRITERION_END_PATTERN.search(rest)
    return rest[:end.start()] if end else rest


def _is_heading(report: str, mention: re.Match) -> bool:
    line_start = report.rfind('\n', 0, mention.start()) + 1
    return HEADING_PREFIX_PATTERN.fullmatch(report[line_start:mention.start()]) is not None


def find_criterion_section(report: str, number: int) -> Optional[str]:
    """
    Text belonging to criterion ``number``.

    A section runs from a ``criterion <number>`` mention to the next criterion
    heading, the next top-level section, or the end of the report. Reports
    often name criteria in passing before their own heading, so heading
    mentions are tried first, then the rest in order. The first section
    carrying a rating or score wins; otherwise the first mention is used.
    """
    mentions = list(re.finditer(rf'criterion\s*{number}(?!\d)', report, re.IGNORECASE))
    if not mentions:
        return None

    headings = [m for m in mentions if _is_heading(report, m)]
    others = [m for m in mentions if not _is_heading(report, m)]
    for mention in headings + others:
        section = _section_from(report, mention)
        if RATING_PATTERN.search(section) or CRITERION_SCORE_PATTERN.search(section):
            return section

    return _section_from(report, mentions[0])


def score_criterion(report: str, criterion: CriterionDefinition) -> CriterionScore:
    """Evaluate one criterion; unmentioned criteria score 0 / Not Claimed."""
    section = find_criterion_section(report, criterion.number)
    if section is None:
        return CriterionScore(
            criterion_number=criterion.number,
            criterion_name=criterion.name,
            rating=CriterionRating.NOT_CLAIMED,
            score=0,
            evidence_quality=score_to_quality(0),
        )

    rating_match = RATING_PATTERN.search(section)
    rating = parse_rating(rating_match.group(1)) if rating_match else CriterionRating.NOT_CLAIMED

    score_match = CRITERION_SCORE_PATTERN.search(section)
    score = clamp(to_int(score_match.group(1))) if score_match else rating_to_score(rating)

    concerns_match = CONCERNS_PATTERN.search(section)
    concerns = extract_bullet_points(concerns_match.group(1)) if concerns_match else []

    return CriterionScore(
        criterion_number=criterion.number,
        criterion_name=criterion.name,
        rating=rating,
        score=score,
        evidence_quality=score_to_quality(score),
        officer_concerns=concerns,
    )


def extract_criteria_scores(report: str, criteria: Sequence[CriterionDefinition]) -> List[CriterionScore]:
    """One record per defined criterion, in ordinal order."""
    ordered = sorted(criteria, key=lambda c: c.number)
    return [score_criterion(report, criterion) for criterion in ordered]


# Evidence tiers

def _tier_count(report: str, tier: int) -> int:
    match = re.search(rf'tier\s*{tier}(?!\d)[^|\n]*\|\s*(\d+)', report, re.IGNORECASE)
    return to_int(match.group(1)) if match else 0


def assess_evidence(tier1_count: int, tier2_count: int) -> EvidenceAssessment:
    if tier1_count >= 5:
        return EvidenceAssessment.STRONG
    if tier1_count >= 3 or tier2_count >= 5:
        return EvidenceAssessment.MODERATE
    if tier1_count >= 1 or tier2_count >= 3:
        return EvidenceAssessment.WEAK
    return EvidenceAssessment.INSUFFICIENT


def extract_evidence_quality(report: str) -> EvidenceQuality:
    """Tier counts, overall assessment and evidence concerns."""
    counts = [_tier_count(report, tier) for tier in (1, 2, 3, 4)]

    concerns_match = EVIDENCE_CONCERNS_PATTERN.search(report)
    concerns = extract_bullet_points(concerns_match.group(1)) if concerns_match else []

    return EvidenceQuality(
        tier1_count=counts[0],
        tier2_count=counts[1],
        tier3_count=counts[2],
        tier4_count=counts[3],
        overall_assessment=assess_evidence(counts[0], counts[1]),
        concerns=concerns,
    )


# RFE predictions

def extract_rfe_predictions(report: str) -> List[RFEPrediction]:
    """Rows of the RFE predictions table, in report order."""
    section = RFE_SECTION_PATTERN.search(report)
    if not section:
        return []

    predictions = []
    for match in RFE_ROW_PATTERN.finditer(section.group(0)):
        topic = match.group(1).strip()
        if not topic or 'Topic' in topic or '---' in topic:
            continue

        predictions.append(RFEPrediction(
            topic=topic,
            probability=clamp(to_int(match.group(2))),
            officer_perspective=match.group(3).strip(),
        ))

    return predictions
