"""Model capabilities, translation context and the chapter translation pipeline.

The orchestrator lives in ``novelmate.translator.engine``; it is not imported
here because the name detection modules depend on ``translator.llm``.
"""

from novelmate.translator.context import ContextAssembler, TranslationContext
from novelmate.translator.llm import (
    Capabilities,
    CapabilityResult,
    LLMCapability,
    LLMClient,
    TextCapability,
    build_capabilities,
)

__all__ = [
    "Capabilities",
    "CapabilityResult",
    "ContextAssembler",
    "LLMCapability",
    "LLMClient",
    "TextCapability",
    "TranslationContext",
    "build_capabilities",
]
