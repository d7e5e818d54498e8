"""LLM service for the Guardian proposal engine.

Provides LangChain/OpenAI integration for proposal content writing.
"""

import json
import re
from typing import Dict, Any, Optional, List
import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from config.errors import ProposalEngineError, ErrorCode

logger = structlog.get_logger()

# Matches a ```json ... ``` (or bare ```) fenced block anywhere in a response
JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, ProposalEngineError) and error.code == ErrorCode.LLM_RATE_LIMIT


def map_llm_error(error: Exception) -> ProposalEngineError:
    """Translate a LangChain/OpenAI exception into a ProposalEngineError."""
    error_msg = str(error)
    lowered = error_msg.lower()

    if "rate_limit" in lowered or "rate limit" in lowered:
        return ProposalEngineError(
            code=ErrorCode.LLM_RATE_LIMIT,
            message="OpenAI rate limit exceeded",
            details={"original_error": error_msg}
        )
    if "context_length" in lowered or "maximum context" in lowered:
        return ProposalEngineError(
            code=ErrorCode.LLM_CONTEXT_TOO_LONG,
            message="Input too long for model context",
            details={"original_error": error_msg}
        )
    return ProposalEngineError(
        code=ErrorCode.LLM_ERROR,
        message=f"LLM generation failed: {error_msg}",
        details={"original_error": error_msg}
    )


def extract_json_text(content: str) -> str:
    """Strip a markdown code fence around a JSON payload, if present."""
    match = JSON_FENCE_PATTERN.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


class LLMService:
    """Service for LLM operations using LangChain.

    Provides a wrapper around ChatOpenAI with token tracking,
    rate-limit retries and error handling.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: Optional[int] = None
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            max_tokens: Response token cap (default from settings).
            timeout_seconds: Request timeout (default from settings).
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def is_configured(self) -> bool:
        """Whether an API key is available for AI calls."""
        return bool(self.api_key)

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization).

        Raises:
            ProposalEngineError: If no API key is configured.
        """
        if not self.is_configured:
            raise ProposalEngineError(
                code=ErrorCode.LLM_NOT_CONFIGURED,
                message="OpenAI API key is not configured"
            )
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
                max_tokens=self.max_tokens,
                timeout=self.timeout_seconds,
                max_retries=settings.llm_max_retries
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        """Get total tokens used across all calls."""
        return self._total_tokens_used

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_rate_limited),
        reraise=True,
    )
    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.

        Rate-limited calls are retried with exponential backoff.

        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and token usage.

        Raises:
            ProposalEngineError: If LLM call fails.
        """
        client = self.client

        try:
            kwargs = {}
            if max_tokens:
                kwargs["max_tokens"] = max_tokens

            response = await client.ainvoke(messages, **kwargs)

            # Track token usage if available
            tokens_used = 0
            if hasattr(response, "response_metadata"):
                usage = response.response_metadata.get("token_usage", {})
                tokens_used = usage.get("total_tokens", 0)
                self._total_tokens_used += tokens_used

            logger.info(
                "llm_generated",
                model=self.model,
                tokens_used=tokens_used,
                content_length=len(response.content)
            )

            return {
                "content": response.content,
                "tokens_used": tokens_used
            }

        except Exception as e:
            mapped = map_llm_error(e)
            logger.warning("llm_generation_failed", model=self.model, code=mapped.code, error=str(e))
            raise mapped

    async def generate_with_system_prompt(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response with system prompt.

        Args:
            system_prompt: System prompt for context.
            user_message: User message/query.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and token usage.
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message)
        ]
        return await self.generate(messages, max_tokens)

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a JSON response.

        The response may be bare JSON or JSON inside a markdown code fence.

        Args:
            system_prompt: System prompt for context.
            user_message: User message/query.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with parsed JSON content and token usage.

        Raises:
            ProposalEngineError: If response is not valid JSON.
        """
        result = await self.generate_with_system_prompt(
            system_prompt,
            user_message,
            max_tokens
        )

        try:
            parsed = json.loads(extract_json_text(result["content"]))

            return {
                "content": parsed,
                "tokens_used": result["tokens_used"]
            }

        except json.JSONDecodeError as e:
            raise ProposalEngineError(
                code=ErrorCode.LLM_ERROR,
                message="LLM did not return valid JSON",
                details={
                    "parse_error": str(e),
                    "raw_content": result["content"][:500]
                }
            )
