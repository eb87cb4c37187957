"""
Completion Provider Protocol

Interface for the language-model collaborator used by the TaskPlanner and
the ReActLoopController. Implementations own transport, retries and model
selection; callers impose their own timeout around each call.
"""

from typing import Protocol


class CompletionProviderProtocol(Protocol):
    """Protocol for single-prompt text completion."""

    async def chat(self, prompt: str) -> str:
        """
        Send a prompt and return the complete text response.

        Args:
            prompt: Full prompt text

        Returns:
            The model's response text

        Raises:
            CompletionError: If no response could be obtained
        """
        ...
