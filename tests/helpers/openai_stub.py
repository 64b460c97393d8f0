"""Test helpers to stub the OpenAI Responses client used by extraction.py.

``OpenAIStub`` mimics the slice of ``openai.OpenAI`` the package touches:
``client.responses.create(**kwargs)`` returning an object with
``output_text``. Each call records its kwargs and pops the next scripted
reply; a reply that is an exception instance is raised instead of returned.

Install it with ``install_openai_stub(monkeypatch, replies)``, which patches
``invoice_builder.extraction.OpenAI`` so every client the module creates
shares the same script and call log.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import httpx
import openai
import pytest

import invoice_builder.extraction as extraction_mod


class _Resp:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text


class OpenAIStub:
    """Scripted stand-in for ``openai.OpenAI``.

    Parameters
    ----------
    replies:
        Each element is a ``str`` (returned as ``output_text``), a JSON-able
        object (dumped to ``output_text``) or an exception instance (raised).
    calls_out:
        List appended with each call's kwargs for argument assertions.
    """

    def __init__(self, replies: Sequence[Any], calls_out: list[dict[str, Any]]) -> None:
        self._replies = list(replies)
        self._calls = calls_out

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                self._outer._calls.append(kwargs)
                if not self._outer._replies:
                    raise AssertionError("OpenAIStub: no scripted reply left")
                reply = self._outer._replies.pop(0)
                if isinstance(reply, BaseException):
                    raise reply
                if not isinstance(reply, str):
                    reply = json.dumps(reply)
                return _Resp(reply)

        self.responses = _Responses(self)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls


def install_openai_stub(
    monkeypatch: pytest.MonkeyPatch, replies: Sequence[Any]
) -> list[dict[str, Any]]:
    """Patch ``invoice_builder.extraction.OpenAI``; return the shared call log."""

    calls: list[dict[str, Any]] = []
    stub = OpenAIStub(replies, calls)
    monkeypatch.setattr(extraction_mod, "OpenAI", lambda *a, **kw: stub)
    return calls


def api_status_error(status_code: int) -> openai.APIStatusError:
    """Build an ``openai.APIStatusError`` carrying ``status_code``."""

    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    response = httpx.Response(status_code, request=request)
    return openai.APIStatusError(f"status {status_code}", response=response, body=None)
