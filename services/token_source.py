"""Token stream source: one streaming LiteLLM completion per generation.

Usage::

    async with TokenStreamSource(prompt, system_prompt=..., llm_config=cfg) as source:
        async for delta in source:
            ...

The upstream stream is released when the ``async with`` block exits, whether
iteration finished, raised, or the consuming task was cancelled.  Nothing is
retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import httpx
import litellm

from config.llm_config import LLMConfig
from errors.exceptions import AppBuilderError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

# Exceptions meaning "the connection is gone", regardless of any status code
# attached to them (litellm.Timeout reports 408).
_TRANSPORT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    litellm.Timeout,
    litellm.APIConnectionError,
    httpx.TransportError,
    asyncio.TimeoutError,
    ConnectionError,
)


def translate_provider_error(exc: BaseException) -> BaseException:
    """Map a provider/client exception onto the domain hierarchy.

    Returns *exc* itself when it is already a domain error or cannot be
    classified.
    """
    if isinstance(exc, AppBuilderError):
        return exc
    if isinstance(exc, _TRANSPORT_EXCEPTIONS):
        return TransportError(str(exc) or type(exc).__name__)
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        provider = getattr(exc, "llm_provider", None) or ""
        return UpstreamError(status, body=_provider_body(exc), provider=str(provider))
    return exc


def _provider_body(exc: BaseException) -> str:
    """Best available copy of what the provider actually sent.

    Prefers the HTTP response text, then the parsed error body, then the
    exception message without LiteLLM's ``litellm.<ErrorClass>: `` prefix.
    """
    response = getattr(exc, "response", None)
    if isinstance(response, httpx.Response):
        try:
            if response.text:
                return response.text
        except httpx.ResponseNotRead:
            pass
    body = getattr(exc, "body", None)
    if isinstance(body, str) and body:
        return body
    if body is not None and not isinstance(body, str):
        return json.dumps(body, ensure_ascii=False, default=str)
    message = str(getattr(exc, "message", None) or exc)
    return message.removeprefix(f"litellm.{type(exc).__name__}: ")


def _chunk_text(chunk: Any) -> str:
    choices = getattr(chunk, "choices", None)
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) or ""


class TokenStreamSource:
    """Async iterator over the text deltas of one code-generation completion.

    Args:
        prompt:        User prompt.
        system_prompt: Formatting instructions for the model.
        llm_config:    Model and limits.  Temperature is always forced to 0.
        timeout:       Ceiling in seconds for the whole generation, from
                       opening the call to the last delta.
    """

    def __init__(
        self,
        prompt: str,
        *,
        system_prompt: str,
        llm_config: LLMConfig,
        timeout: float = 300.0,
    ) -> None:
        self._messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        self._config = llm_config.merge(LLMConfig(temperature=0.0))
        self._timeout = timeout
        self._deadline: float | None = None
        self._stream: Any = None

    # -- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> TokenStreamSource:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def open(self) -> None:
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + self._timeout
        logger.info(
            "Opening completion stream (model=%s, timeout=%.0fs)",
            self._config.model,
            self._timeout,
        )
        try:
            self._stream = await asyncio.wait_for(
                litellm.acompletion(
                    model=self._config.model,
                    messages=self._messages,
                    stream=True,
                    **self._config.to_litellm_kwargs(),
                ),
                timeout=self._remaining(),
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"generation exceeded {self._timeout:.0f}s before the first token"
            ) from None
        except Exception as exc:
            mapped = translate_provider_error(exc)
            if mapped is exc:
                raise
            raise mapped from exc

    async def aclose(self) -> None:
        """Release the upstream connection.  Safe to call more than once."""
        stream, self._stream = self._stream, None
        if stream is None:
            return
        for target in (stream, getattr(stream, "completion_stream", None)):
            close = getattr(target, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception:
                logger.warning("Failed to release upstream stream", exc_info=True)
            break
        logger.debug("Upstream stream released")

    # -- iteration -----------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[str]:
        if self._stream is None:
            raise RuntimeError("TokenStreamSource must be opened before iterating")
        return self._deltas()

    async def _deltas(self) -> AsyncIterator[str]:
        iterator = self._stream.__aiter__()
        while True:
            try:
                chunk = await asyncio.wait_for(
                    iterator.__anext__(), timeout=self._remaining()
                )
            except StopAsyncIteration:
                return
            except asyncio.TimeoutError:
                raise TransportError(
                    f"generation exceeded {self._timeout:.0f}s ceiling"
                ) from None
            except Exception as exc:
                mapped = translate_provider_error(exc)
                if mapped is exc:
                    raise
                raise mapped from exc

            text = _chunk_text(chunk)
            if text:
                yield text

    def _remaining(self) -> float:
        if self._deadline is None:
            return self._timeout
        return max(self._deadline - asyncio.get_running_loop().time(), 0.0)
