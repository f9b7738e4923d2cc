"""Language-model access and response parsing."""

from .client import LLMClient, ModelResponse, ModelTier, estimate_tokens
from .json_extract import extract_first_json_object, find_json_object

__all__ = [
    "LLMClient",
    "ModelResponse",
    "ModelTier",
    "estimate_tokens",
    "extract_first_json_object",
    "find_json_object",
]
