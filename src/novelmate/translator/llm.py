"""OpenAI-compatible LLM client and the text capabilities built on it.

The pipeline never talks to the client directly. It receives capabilities:
awaitables taking a prompt and returning a ``CapabilityResult`` that is
either a success carrying text or a failure carrying a reason.
"""

import asyncio
from dataclasses import dataclass
from typing import Literal, NamedTuple, Optional, Protocol

import structlog

from novelmate.config import AppConfig, LLMConfig, get_config, get_effective_llm_config

logger = structlog.get_logger()

# Task types for LLM client configuration
TaskType = Literal["extract", "translate", "summarize", "default"]


class LLMClient:
    """OpenAI-compatible LLM client with retry logic."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        task: Optional[TaskType] = None,
    ):
        """Initialize the LLM client.

        Args:
            config: LLM configuration, uses global config if None
            task: Task type for automatic config selection (extract, translate, summarize).
                  If both config and task are provided, config takes precedence.
        """
        self.config = config or self._get_config_for_task(task or "default")
        self._client = None

    def _get_config_for_task(self, task: TaskType) -> LLMConfig:
        """Get the effective LLM config for a task, falling back to the default."""
        app_config = get_config()
        fallback = app_config.llm

        if task == "extract":
            return get_effective_llm_config(app_config.extraction_llm, fallback, "Extraction")
        elif task == "translate":
            return get_effective_llm_config(app_config.translator_llm, fallback, "Translator")
        elif task == "summarize":
            return get_effective_llm_config(app_config.summary_llm, fallback, "Summary")
        return fallback

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_retries: Optional[int] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a completion request with retry logic.

        Args:
            system_prompt: System message content
            user_prompt: User message content
            max_retries: Number of retry attempts (config default if None)
            temperature: Override temperature (uses config default if None)
            max_tokens: Override max tokens (uses config default if None)

        Returns:
            Generated text content
        """
        retries = self.config.max_retries if max_retries is None else max_retries
        last_error: Optional[Exception] = None

        for attempt in range(retries + 1):
            try:
                response = await self.client.chat.completions.create(
                    model=self.config.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    temperature=temperature if temperature is not None else self.config.temperature,
                    max_tokens=max_tokens or self.config.max_tokens,
                )
                content = response.choices[0].message.content
                if content is None:
                    raise RuntimeError("LLM returned an empty message")
                return content.strip()

            except Exception as e:
                last_error = e
                if attempt < retries:
                    delay = 2**attempt  # 1, 2, 4 seconds
                    logger.warning("llm_retry", attempt=attempt + 1, error=str(e))
                    await asyncio.sleep(delay)

        raise last_error or RuntimeError("LLM request failed")


@dataclass(frozen=True)
class CapabilityResult:
    """Outcome of a capability call: text on success, a reason on failure."""

    ok: bool
    text: str = ""
    reason: str = ""

    @classmethod
    def success(cls, text: str) -> "CapabilityResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, reason: str) -> "CapabilityResult":
        return cls(ok=False, reason=reason)


class TextCapability(Protocol):
    """Prompt in, ``CapabilityResult`` out. Implementations must not raise."""

    async def __call__(self, prompt: str) -> CapabilityResult: ...


class LLMCapability:
    """A fixed-purpose model call with an explicit timeout."""

    def __init__(
        self,
        client: LLMClient,
        system_prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        name: str = "llm",
    ) -> None:
        self.client = client
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout if timeout is not None else client.config.timeout_seconds
        self.name = name

    async def __call__(self, prompt: str) -> CapabilityResult:
        try:
            text = await asyncio.wait_for(
                self.client.complete(
                    system_prompt=self.system_prompt,
                    user_prompt=prompt,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("capability_timeout", capability=self.name, timeout=self.timeout)
            return CapabilityResult.failure(f"{self.name} timed out after {self.timeout:g}s")
        except Exception as e:
            logger.warning("capability_failed", capability=self.name, error=str(e))
            return CapabilityResult.failure(f"{self.name} failed: {e}")
        return CapabilityResult.success(text)


class Capabilities(NamedTuple):
    """The three model capabilities the pipeline consumes."""

    extract: TextCapability
    translate: TextCapability
    summarize: TextCapability


EXTRACTION_SYSTEM_PROMPT = (
    "You are an expert in Korean and Japanese fiction. "
    "You identify proper nouns precisely and answer with JSON only."
)

TRANSLATION_SYSTEM_PROMPT = (
    "You are a professional literary translator of Korean and Japanese web novels into English."
)

SUMMARY_SYSTEM_PROMPT = "You write concise plot summaries of novel chapters."


def build_capabilities(config: Optional[AppConfig] = None) -> Capabilities:
    """Build the extraction, translation and summarization capabilities."""
    app_config = config or get_config()
    llm = app_config.llm

    extract_client = LLMClient(
        get_effective_llm_config(app_config.extraction_llm, llm, "Extraction")
    )
    translate_client = LLMClient(
        get_effective_llm_config(app_config.translator_llm, llm, "Translator")
    )
    summary_client = LLMClient(
        get_effective_llm_config(app_config.summary_llm, llm, "Summary")
    )

    return Capabilities(
        extract=LLMCapability(
            extract_client,
            EXTRACTION_SYSTEM_PROMPT,
            max_tokens=app_config.detection.max_tokens,
            temperature=0.2,
            name="extract",
        ),
        translate=LLMCapability(
            translate_client,
            TRANSLATION_SYSTEM_PROMPT,
            name="translate",
        ),
        summarize=LLMCapability(
            summary_client,
            SUMMARY_SYSTEM_PROMPT,
            max_tokens=app_config.summary.max_tokens,
            temperature=0.3,
            name="summarize",
        ),
    )


async def check_llm_connection(
    config: Optional[LLMConfig] = None,
    task: Optional[TaskType] = None,
) -> bool:
    """Check that the configured endpoint answers a trivial prompt."""
    try:
        client = LLMClient(config=config, task=task)
        response = await client.complete(
            system_prompt="You are a helpful assistant.",
            user_prompt="Say 'hello' in Korean.",
            max_retries=0,
            max_tokens=10,
        )
        return len(response) > 0
    except Exception as e:
        logger.error("llm_connection_failed", error=str(e))
        return False
