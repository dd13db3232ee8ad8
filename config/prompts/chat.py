"""Chat system prompt: the assistant persona for single-shot text replies."""

from __future__ import annotations

CHAT_SYSTEM_PROMPT = "You are Mr. Deepseeks, a helpful AI assistant."

# Used when an image arrives without a question.
DEFAULT_IMAGE_QUESTION = "Describe this image in detail."
