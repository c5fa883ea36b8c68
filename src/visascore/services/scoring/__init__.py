"""
Officer scoring workflow and persona prompts.
"""

from .officer_scorer import OfficerScoringService, build_document_content
from .prompts import officer_chat_prompt, officer_system_prompt, scoring_prompt

__all__ = [
    'OfficerScoringService',
    'build_document_content',
    'officer_system_prompt',
    'officer_chat_prompt',
    'scoring_prompt',
]
