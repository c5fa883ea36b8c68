"""
Ordered provider fallback for text generation.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ...core.config import Settings
from ...core.exceptions import GenerationError, GenerationNotConfiguredError
from ...core.interfaces import TextGenerator
from ...core.resilience import CircuitBreaker, CircuitBreakerConfig, RetryConfig
from .providers import AnthropicTextGenerator, GeminiTextGenerator


logger = logging.getLogger(__name__)


class FallbackTextGenerator(TextGenerator):
    """
    Tries each provider in order and returns the first success.

    Every provider sits behind its own circuit breaker so a provider that
    keeps failing is skipped until its recovery timeout passes.
    """

    name = "fallback"

    def __init__(
        self,
        generators: Sequence[TextGenerator],
        breaker_config: Optional[CircuitBreakerConfig] = None
    ):
        if not generators:
            raise GenerationNotConfiguredError("At least one text generator is required")

        self.generators: List[TextGenerator] = list(generators)
        config = breaker_config or CircuitBreakerConfig()
        self.breakers = {
            generator.name: CircuitBreaker(f"generator:{generator.name}", config)
            for generator in self.generators
        }

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> str:
        text, _ = await self.generate_with_provider(prompt, system_prompt, max_tokens, temperature)
        return text

    async def generate_with_provider(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> Tuple[str, str]:
        """
        Generate with the first provider that succeeds.

        Raises:
            Exception: The first provider's error when every provider fails
        """
        first_error: Optional[Exception] = None

        for generator in self.generators:
            breaker = self.breakers[generator.name]
            if breaker.is_open:
                logger.warning(f"Skipping provider {generator.name}: circuit open")
                continue

            try:
                text = await breaker.call(
                    generator.generate, prompt, system_prompt, max_tokens, temperature
                )
            except Exception as e:
                logger.error(f"Provider {generator.name} failed: {str(e)}")
                if first_error is None:
                    first_error = e
                continue

            logger.info(f"Generated {len(text)} characters using {generator.name}")
            return text, generator.name

        if first_error is not None:
            raise first_error
        raise GenerationError("All text generation providers are unavailable")


def build_text_generator(settings: Settings) -> FallbackTextGenerator:
    """
    Construct the provider chain described by settings.

    Providers without an API key are left out.

    Raises:
        GenerationNotConfiguredError: If no provider has credentials
    """
    retry_config = RetryConfig(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
    )

    generators: List[TextGenerator] = []
    for provider in settings.provider_order:
        provider = provider.strip().lower()
        if provider == "anthropic":
            if settings.anthropic_api_key:
                generators.append(AnthropicTextGenerator(
                    api_key=settings.anthropic_api_key,
                    model_name=settings.anthropic_model,
                    retry_config=retry_config,
                ))
        elif provider == "gemini":
            if settings.gemini_api_key:
                generators.append(GeminiTextGenerator(
                    api_key=settings.gemini_api_key,
                    model_name=settings.gemini_model,
                    retry_config=retry_config,
                ))
        else:
            logger.warning(f"Unknown text generation provider '{provider}' ignored")

    if not generators:
        raise GenerationNotConfiguredError(
            "No text generation provider configured; set ANTHROPIC_API_KEY or GEMINI_API_KEY"
        )

    return FallbackTextGenerator(generators)
