"""
LLM integration for PediCare.
"""

from .assistant import AssistMode, ClinicalAssistant
from .client import LLMClient, get_client, set_client

__all__ = ["AssistMode", "ClinicalAssistant", "LLMClient", "get_client", "set_client"]
