"""Response normalization.

This module provides:
- The SuccessResult / FailureResult shapes every execution result takes
- Provider adapters for known agent hosting services
- Local template generators for demo agents and offline fallbacks
- The ResponseNormalizer tying them together
"""

from agentmarket.normalization.adapters import AdapterRegistry, ProviderAdapter
from agentmarket.normalization.normalizer import ResponseNormalizer
from agentmarket.normalization.results import (
    FailureResult,
    MediaLink,
    NormalizedResult,
    SuccessResult,
)
from agentmarket.normalization.templates import (
    GeneratedContent,
    TemplateRegistry,
    TemplateRegistryError,
)

__all__ = [
    "AdapterRegistry",
    "FailureResult",
    "GeneratedContent",
    "MediaLink",
    "NormalizedResult",
    "ProviderAdapter",
    "ResponseNormalizer",
    "SuccessResult",
    "TemplateRegistry",
    "TemplateRegistryError",
]
