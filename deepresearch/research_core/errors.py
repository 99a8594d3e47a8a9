from __future__ import annotations


class ResearchError(Exception):
    """Base class for research pipeline errors."""


class ProviderError(ResearchError):
    """A search or reasoning backend failed (transport, auth, quota)."""

    def __init__(self, message: str, *, provider: str = "unknown"):
        super().__init__(message)
        self.provider = provider

    def __str__(self) -> str:
        return f"[{self.provider}] {self.args[0]}"


class ParseError(ResearchError):
    """Reasoning output was not a well-formed analysis object."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class EngineFailure(ResearchError):
    """Unexpected failure inside the iteration loop."""
