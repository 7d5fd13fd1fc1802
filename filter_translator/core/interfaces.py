"""
Abstract interfaces for the completion service.
"""

from typing import Protocol


class ICompletionClient(Protocol):
    """
    Send one system instruction and one user message to a chat completion
    service and return the raw text of the reply.

    Implementations raise subclasses of
    `filter_translator.core.exceptions.CompletionError` on failure.
    """

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run a single completion.

        Args:
            system_prompt: System-role instruction
            user_prompt: User-role message

        Returns:
            Raw completion text
        """
        ...
