"""
Generative text backends with provider fallback.
"""

from .fallback import FallbackTextGenerator, build_text_generator
from .providers import AnthropicTextGenerator, GeminiTextGenerator

__all__ = [
    'AnthropicTextGenerator',
    'GeminiTextGenerator',
    'FallbackTextGenerator',
    'build_text_generator',
]
