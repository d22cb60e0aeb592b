"""Answer engine contract.

Provider clients live outside this package. Anything with an async
``ask(query) -> str`` can be probed; failures should raise
:class:`aeoscore.errors.ProviderError`, though any exception is treated as a
failed probe.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class Platform(str, Enum):
    CHATGPT = "chatgpt"
    PERPLEXITY = "perplexity"
    GEMINI = "gemini"
    CLAUDE = "claude"
    COPILOT = "copilot"


class AnswerEngine(Protocol):
    async def ask(self, query: str) -> str: ...
