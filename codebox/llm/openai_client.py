"""
OpenAI client for the coding assistant, with streamed text output.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from openai import OpenAI

from codebox.config import get_config


SYSTEM_PROMPT = (
    "You are a concise coding assistant for interview practice. "
    "Prefer brief, correct answers. When writing code, include minimal context and comments."
)


class AssistantClient:
    """Client that forwards a conversation to the chat completions API."""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        config = get_config()
        if client is None:
            config.require_openai()
            client = OpenAI(api_key=config.openai_api_key)
        self.client = client
        self.model = model or config.model_id

    def stream_text(
        self,
        chat_history: Iterable[Dict[str, str]],
        temperature: float = 0.2,
    ) -> Iterator[str]:
        """
        Start the completion and return an iterator over its text deltas.

        The request is sent before this returns, so connection and
        authentication errors surface here rather than mid-stream.

        Args:
            chat_history: Previous messages [{"role": "user/assistant", "content": "..."}]
            temperature: Sampling temperature

        Returns:
            Iterator of non-empty text fragments in order
        """
        messages: List[Dict[str, str]] = [{"role": "system", "content": SYSTEM_PROMPT}]
        for turn in chat_history:
            messages.append({
                "role": turn.get("role", "user"),
                "content": turn.get("content", ""),
            })

        stream = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            stream=True,
        )
        return _iter_deltas(stream)


def _iter_deltas(stream) -> Iterator[str]:
    for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta


# Global client instance
_client: Optional[AssistantClient] = None


def get_assistant_client() -> AssistantClient:
    """Get the global assistant client instance."""
    global _client
    if _client is None:
        _client = AssistantClient()
    return _client
