"""
Regulatory criteria for each supported visa classification.
"""

from typing import Dict, List, Union

from .exceptions import UnknownVisaTypeError
from .models import CriterionDefinition, VisaType


def _criteria(*names: str) -> List[CriterionDefinition]:
    return [
        CriterionDefinition(number=i, letter=chr(ord("A") + i - 1), name=name)
        for i, name in enumerate(names, 1)
    ]


VISA_CRITERIA: Dict[VisaType, List[CriterionDefinition]] = {
    VisaType.O_1A: _criteria(
        "Nationally or internationally recognized prizes or awards",
        "Membership in associations requiring outstanding achievements",
        "Published material about the beneficiary",
        "Participation as a judge of others' work",
        "Original contributions of major significance",
        "Authorship of scholarly articles",
        "Employment in a critical or essential capacity",
        "High salary or remuneration",
    ),
    VisaType.O_1B: _criteria(
        "Performed as a lead or starring participant",
        "Critical reviews or other published material",
        "Performed for organizations with distinguished reputation",
        "Record of major commercial or critically acclaimed successes",
        "Received significant recognition from organizations, critics, or experts",
        "High salary or substantial remuneration",
    ),
    VisaType.P_1A: _criteria(
        "International recognition in the sport",
        "Significant participation with a major United States sports league",
        "Significant participation in international competition",
        "Significant participation in a prior season with a major U.S. college",
        "Written statement from an official of the sport",
        "International ranking",
    ),
    VisaType.EB_1A: _criteria(
        "Nationally or internationally recognized prizes or awards",
        "Membership in associations requiring outstanding achievements",
        "Published material about the beneficiary",
        "Participation as a judge of others' work",
        "Original contributions of major significance",
        "Authorship of scholarly articles",
        "Display of work at artistic exhibitions",
        "Leading or critical role in distinguished organizations",
        "High salary or remuneration",
        "Commercial successes in the performing arts",
    ),
}

# Minimum number of criteria a petition must satisfy
MINIMUM_CRITERIA: Dict[VisaType, int] = {
    VisaType.O_1A: 3,
    VisaType.O_1B: 3,
    VisaType.P_1A: 2,
    VisaType.EB_1A: 3,
}


def parse_visa_type(visa_type: Union[VisaType, str]) -> VisaType:
    """Normalize a visa type given as enum or string ("O-1A", "o1a", ...)."""
    if isinstance(visa_type, VisaType):
        return visa_type

    normalized = str(visa_type).strip().upper().replace("_", "-")
    for candidate in VisaType:
        if normalized in (candidate.value, candidate.value.replace("-", "")):
            return candidate

    raise UnknownVisaTypeError(f"Unsupported visa type: {visa_type!r}")


def get_criteria(visa_type: Union[VisaType, str]) -> List[CriterionDefinition]:
    """Criteria for a visa type, in ordinal order."""
    return list(VISA_CRITERIA[parse_visa_type(visa_type)])


def get_minimum_criteria(visa_type: Union[VisaType, str]) -> int:
    """Number of criteria required for the classification."""
    return MINIMUM_CRITERIA[parse_visa_type(visa_type)]
