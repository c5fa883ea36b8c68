"""
Generative text providers: Anthropic Claude and Google Gemini.
Each provider retries transient failures with exponential backoff.
"""

import logging
from typing import Optional

import anthropic
import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from ...core.exceptions import EmptyGenerationError
from ...core.interfaces import TextGenerator
from ...core.resilience import RetryConfig, with_retry


logger = logging.getLogger(__name__)


class AnthropicTextGenerator(TextGenerator):
    """
    Claude messages API provider.
    """

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model_name: str = "claude-sonnet-4-20250514",
        retry_config: Optional[RetryConfig] = None,
        client: Optional[anthropic.AsyncAnthropic] = None
    ):
        """
        Initialize the Claude provider.

        Args:
            api_key: Anthropic API key
            model_name: Claude model to use
            retry_config: Retry policy for transient failures
            client: Preconfigured async client (tests inject a mock)
        """
        self.model_name = model_name
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._create_with_retry = with_retry(retry_config or RetryConfig())(self._create_message)

        logger.info(f"Initialized Anthropic text generator with model: {model_name}")

    async def _create_message(self, prompt: str, system_prompt: str, max_tokens: int, temperature: float):
        return await self.client.messages.create(
            model=self.model_name,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> str:
        response = await self._create_with_retry(prompt, system_prompt, max_tokens, temperature)

        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text

        raise EmptyGenerationError("No text content in Claude response")


class GeminiTextGenerator(TextGenerator):
    """
    Gemini generative model provider.
    """

    name = "gemini"

    SAFETY_SETTINGS = {
        HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    }

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-pro",
        retry_config: Optional[RetryConfig] = None
    ):
        """
        Initialize the Gemini provider.

        Args:
            api_key: Google Gemini API key
            model_name: Gemini model to use
            retry_config: Retry policy for transient failures
        """
        self.model_name = model_name
        genai.configure(api_key=api_key)
        self._generate_with_retry = with_retry(retry_config or RetryConfig())(self._generate_content)

        logger.info(f"Initialized Gemini text generator with model: {model_name}")

    def _build_model(self, system_prompt: str) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_prompt,
            safety_settings=self.SAFETY_SETTINGS,
        )

    async def _generate_content(self, prompt: str, system_prompt: str, max_tokens: int, temperature: float):
        model = self._build_model(system_prompt)
        return await model.generate_content_async(
            prompt,
            generation_config=genai.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.3
    ) -> str:
        response = await self._generate_with_retry(prompt, system_prompt, max_tokens, temperature)

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates
            raise EmptyGenerationError(f"No text content in Gemini response: {str(e)}") from e

        if not text:
            raise EmptyGenerationError("No text content in Gemini response")
        return text
