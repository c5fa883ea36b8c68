"""
Core data models for VisaScore.
All models use Pydantic for validation and serialization.

Records consumed downstream (stored results, UI) serialize with camelCase
aliases: ``overallScore``, ``criteriaScores[].officerConcerns`` and so on.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class VisaType(str, Enum):
    """Supported petition classifications."""
    O_1A = "O-1A"
    O_1B = "O-1B"
    P_1A = "P-1A"
    EB_1A = "EB-1A"


class DocumentType(str, Enum):
    """Kinds of submissions the officer can score."""
    FULL_PETITION = "full_petition"
    RFE_RESPONSE = "rfe_response"
    EXHIBIT_PACKET = "exhibit_packet"
    CONTRACT_DEAL_MEMO = "contract_deal_memo"


class CriterionRating(str, Enum):
    """Officer's categorical rating of a single criterion."""
    STRONG = "Strong"
    ADEQUATE = "Adequate"
    WEAK = "Weak"
    INSUFFICIENT = "Insufficient"
    NOT_CLAIMED = "Not Claimed"


class EvidenceQualityTier(str, Enum):
    """Qualitative tier derived from a criterion score."""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class EvidenceAssessment(str, Enum):
    """Overall assessment of the cited evidence tiers."""
    STRONG = "Strong"
    MODERATE = "Moderate"
    WEAK = "Weak"
    INSUFFICIENT = "Insufficient"


class OverallRating(str, Enum):
    """Bottom-line rating, a step function of the overall score."""
    APPROVE = "Approve"
    RFE_LIKELY = "RFE Likely"
    DENIAL_RISK = "Denial Risk"


class JobStatus(str, Enum):
    """States of the background scoring job."""
    QUEUED = "queued"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    COMPLETED = "completed"
    ERROR = "error"


class FileStatus(str, Enum):
    """Text extraction status of an uploaded document."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ChatRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def rating_for_score(score: int) -> OverallRating:
    """Map an overall score to its rating (>=70 Approve, >=50 RFE Likely)."""
    if score >= 70:
        return OverallRating.APPROVE
    if score >= 50:
        return OverallRating.RFE_LIKELY
    return OverallRating.DENIAL_RISK


class CamelModel(BaseModel):
    """Base for records serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Reference data

class CriterionDefinition(CamelModel):
    """A qualifying criterion of a visa classification."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    number: int = Field(ge=1)
    letter: str = ""
    name: str


# Parsed report

class CriterionScore(CamelModel):
    """Per-criterion evaluation mined from the officer report."""
    criterion_number: int
    criterion_name: str
    rating: CriterionRating = CriterionRating.NOT_CLAIMED
    score: int = Field(default=0, ge=0, le=100)
    evidence_quality: EvidenceQualityTier = EvidenceQualityTier.POOR
    officer_concerns: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class EvidenceQuality(CamelModel):
    """Prestige distribution of the cited evidence."""
    tier1_count: int = Field(default=0, ge=0)
    tier2_count: int = Field(default=0, ge=0)
    tier3_count: int = Field(default=0, ge=0)
    tier4_count: int = Field(default=0, ge=0)
    overall_assessment: EvidenceAssessment = EvidenceAssessment.INSUFFICIENT
    concerns: List[str] = Field(default_factory=list)


class RFEPrediction(CamelModel):
    """A topic the officer would likely raise in a Request for Evidence."""
    topic: str
    probability: int = Field(ge=0, le=100)
    officer_perspective: str
    suggested_evidence: List[str] = Field(default_factory=list)


class Recommendations(CamelModel):
    """Action items grouped by severity."""
    critical: List[str] = Field(default_factory=list)
    high: List[str] = Field(default_factory=list)
    recommended: List[str] = Field(default_factory=list)


class ParsedReport(CamelModel):
    """Structured view of one officer report. Never mutated after parsing."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    overall_score: int = Field(ge=0, le=100)
    overall_rating: OverallRating
    approval_probability: int = Field(ge=0, le=100)
    rfe_probability: int = Field(ge=0, le=100)
    denial_risk: int = Field(ge=0, le=100)
    criteria_scores: List[CriterionScore] = Field(default_factory=list)
    evidence_quality: EvidenceQuality = Field(default_factory=EvidenceQuality)
    rfe_predictions: List[RFEPrediction] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    recommendations: Recommendations = Field(default_factory=Recommendations)
    full_report: str = ""

    @model_validator(mode="after")
    def check_rating_matches_score(self):
        if self.overall_rating != rating_for_score(self.overall_score):
            raise ValueError(
                f"overall_rating {self.overall_rating.value!r} inconsistent "
                f"with overall_score {self.overall_score}"
            )
        return self


# Before/after comparison

class MetricChange(CamelModel):
    """One headline number in two reports."""
    before: int
    after: int
    change: int
    improved: bool


class CriterionSnapshot(CamelModel):
    rating: CriterionRating
    score: int = Field(ge=0, le=100)


class CriterionChange(CamelModel):
    """Movement of one criterion between two reports."""
    criterion_number: int
    criterion_name: str
    before: CriterionSnapshot
    after: CriterionSnapshot
    change: int
    improved: bool


class ReportComparison(CamelModel):
    """How a later report (typically after an RFE response) differs from an earlier one."""
    overall_score: MetricChange
    approval_probability: MetricChange
    rfe_probability: MetricChange
    denial_risk: MetricChange
    criteria_comparison: List[CriterionChange] = Field(default_factory=list)
    weaknesses_resolved: List[str] = Field(default_factory=list)
    new_strengths: List[str] = Field(default_factory=list)
    summary: str


# Workflow records

class ScoringInput(BaseModel):
    """Everything the officer needs to review one submission."""
    session_id: str
    document_type: DocumentType
    visa_type: VisaType
    beneficiary_name: Optional[str] = None
    document_content: str
    rfe_original_content: Optional[str] = None


class ScoringSession(CamelModel):
    """User-facing scoring session."""
    id: UUID = Field(default_factory=uuid4)
    document_type: DocumentType
    visa_type: VisaType
    beneficiary_name: Optional[str] = None
    status: JobStatus = JobStatus.QUEUED
    progress: int = Field(default=0, ge=0, le=100)
    progress_message: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


class UploadedDocument(CamelModel):
    """A file attached to a session, with its extracted text."""
    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    filename: str
    file_type: Optional[str] = None
    content: bytes = b""
    status: FileStatus = FileStatus.PENDING
    extracted_text: Optional[str] = None
    word_count: Optional[int] = None
    page_count: Optional[int] = None
    document_category: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ScoringJob(BaseModel):
    """Checkpoint record of a background scoring run."""
    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    status: JobStatus = JobStatus.QUEUED
    document_content: Optional[str] = None
    rfe_original_content: Optional[str] = None
    report: Optional[ParsedReport] = None
    error_message: Optional[str] = None
    attempts: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ChatMessage(CamelModel):
    """One turn of the officer chat."""
    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    role: ChatRole
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
