"""Exception types for llm-apply.

Extraction itself never raises for bad input; these cover setup errors
and the fatal input-read case.
"""


class LlmApplyError(Exception):
    """Base exception for llm-apply."""


class ConfigError(LlmApplyError):
    """Settings file missing or invalid."""


class InputReadError(LlmApplyError):
    """The input stream could not be read."""


__all__ = ["ConfigError", "InputReadError", "LlmApplyError"]
