# jagacall/ai/__init__.py

"""
ILMU integration.

Exposes:
    IlmuClient            - chat-completions transport
    build_prompt(kind, r) - system + user prompts per analysis kind
    parse_result(raw, kind, model) - fail-safe result normalization
"""

from .ilmu_client import IlmuClient, ProviderRequest
from .prompts import Prompt, build_prompt
from .result_parser import ParseFailure, parse_result, try_parse
