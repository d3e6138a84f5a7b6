"""LLM Provider implementations for the Interview Practice core."""

from .siliconflow_provider import SiliconFlowClient, extract_json_array

__all__ = [
    "SiliconFlowClient",
    "extract_json_array",
]
