"""
Pytest configuration and shared fixtures for VisaScore tests.
"""

import pytest
from hypothesis import settings, Verbosity
from typing import List, Optional, Tuple

from visascore.core.interfaces import TextGenerator
from visascore.core.models import DocumentType, ScoringSession, UploadedDocument, VisaType
from visascore.core.monitoring import metrics_collector

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the appropriate profile
settings.load_profile("default")


SAMPLE_REPORT = """## 1. EXECUTIVE ASSESSMENT

| Assessment | Rating |
|------------|--------|
| Overall Strength | Moderate |
| Approval Probability | 62% |
| RFE Probability | 30% |
| Denial Risk | 8% |

## 2. CRITERION-BY-CRITERION EVALUATION

### Criterion 1: Awards
**My Rating:** Strong
**Evidence Score:** 82

**What I See:**
- Two international prizes with published selection criteria

**My Concerns:**
- Prize jury composition is not documented
- One award is limited to regional entrants

**What's Missing:**
- Media coverage of the awards

### Criterion 3: Published material
**My Rating:** Adequate

**My Concerns:**
- Articles are mostly trade press

### Criterion 4: Judging
**My Rating:** Weak
- Served on one panel only

## 3. EVIDENCE QUALITY ASSESSMENT

| Tier | Count | Examples |
|------|-------|----------|
| Tier 1 (Major media, top awards) | 3 | National newspaper, Nature |
| Tier 2 (Trade publications) | 4 | IEEE Spectrum |
| Tier 3 (Online, regional) | 2 | Blogs |
| Tier 4 (Self-published, weak) | 1 | Personal site |

**Evidence Concerns:**
- Several letters come from close collaborators
- Circulation figures are missing for trade outlets

## 4. RED FLAGS I'VE IDENTIFIED

1. Salary evidence does not show top-of-field compensation
2. Gap in publications between 2019 and 2021

## 5. RFE PREDICTIONS

| RFE Topic | Probability | What I'd Request |
|-----------|-------------|------------------|
| Judging | 70% | Proof of selection as a judge |
| Original contributions | 55% | Independent expert letters |

## 6. STRENGTHS I ACKNOWLEDGE

1. Sustained citation record over eight years
2. Leading role at a distinguished startup

## 7. MY RECOMMENDATION

**VERDICT:** REQUEST ADDITIONAL EVIDENCE

CRITICAL (Must do):
1. Document the judging panel selection process


HIGH PRIORITY (Should do):
1. Add independent expert letters


RECOMMENDED (Would help):
1. Include circulation data for trade outlets

## 8. SCORING MATRIX

| Category | Weight | Score | Weighted |
|----------|--------|-------|----------|
| Evidence Quality | 25% | 70/100 | 17.5 |
| **TOTAL** | **100%** | | **64/100** |
"""


class StubTextGenerator(TextGenerator):
    """Text generator returning canned replies and recording calls."""

    def __init__(self, name: str = "stub", reply: str = SAMPLE_REPORT, error: Optional[Exception] = None):
        self.name = name
        self.reply = reply
        self.error = error
        self.calls: List[Tuple[str, str, int, float]] = []

    async def generate(self, prompt, system_prompt, max_tokens=8192, temperature=0.3):
        self.calls.append((prompt, system_prompt, max_tokens, temperature))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def reset_metrics():
    """Isolate the module-level metrics collector between tests."""
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def sample_report() -> str:
    """Officer report covering every section the parser reads."""
    return SAMPLE_REPORT


@pytest.fixture
def stub_generator() -> StubTextGenerator:
    return StubTextGenerator()


@pytest.fixture
def sample_session() -> ScoringSession:
    """O-1A full petition session."""
    return ScoringSession(
        visa_type=VisaType.O_1A,
        document_type=DocumentType.FULL_PETITION,
        beneficiary_name="Dr. Jane Smith"
    )


@pytest.fixture
def petition_text() -> str:
    """Plain-text petition long enough to count as usable content."""
    return (
        "Petition for Dr. Jane Smith, a researcher in computational biology. "
        "She received the International Society award in 2022 and has served "
        "as a reviewer for three journals. Her work has been cited 1,400 times."
    )


@pytest.fixture
def text_document(sample_session, petition_text) -> UploadedDocument:
    return UploadedDocument(
        session_id=sample_session.id,
        filename="petition.txt",
        file_type="text/plain",
        content=petition_text.encode("utf-8"),
        document_category="petition"
    )
