"""reqman placeholders - find and interactively fill ':?' markers.

A marker is the literal two characters ``:?``. Each occurrence is filled by
one call to a prompt function, strictly one at a time and in order:
URL, then header values (merged order), then body. The text a user types is
never scanned again, so an answer containing ``:?`` is sent as typed.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import replace
from typing import NamedTuple

import click

from reqman.errors import InteractivityRequired
from reqman.models import EffectiveRequest

MARKER = ":?"

Prompt = Callable[[str], str]


class Placeholder(NamedTuple):
    location: str  # "url", "header" or "body"
    key: str | None  # header name for location == "header"
    offset: int


def find_markers(text: str, start: int = 0) -> list[int]:
    """Offsets of every marker in text, scanning left to right."""
    offsets = []
    idx = text.find(MARKER, start)
    while idx != -1:
        offsets.append(idx)
        idx = text.find(MARKER, idx + len(MARKER))
    return offsets


def find_placeholders(request: EffectiveRequest) -> list[Placeholder]:
    """List every prompt a request needs, in resolution order.

    Bodies that are bytes or multipart are opaque and never scanned.
    """
    found = [Placeholder("url", None, i) for i in find_markers(request.url)]
    for key, value in request.headers.items():
        # one prompt per header, however many markers it holds
        markers = find_markers(value)
        if markers:
            found.append(Placeholder("header", key, markers[0]))
    if isinstance(request.body, str):
        found.extend(Placeholder("body", None, i) for i in find_markers(request.body))
    return found


def body_message(offset: int, current: str) -> str:
    return (
        f"Missing data at position {offset} - {current}. "
        "Please provide the correct value: "
    )


def header_message(key: str) -> str:
    return (
        f"Header value for key '{key}' is missing data. "
        "Please provide the correct value: "
    )


def resolve_text(
    text: str,
    prompt: Prompt,
    message: Callable[[int, str], str] = body_message,
) -> str:
    """Fill each marker in text with one prompt, left to right.

    ``message(offset, current_text)`` builds the prompt. Offsets are those of
    the text as it stands after earlier substitutions.
    """
    pos = 0
    while True:
        idx = text.find(MARKER, pos)
        if idx == -1:
            return text
        value = prompt(message(idx, text))
        text = text[:idx] + value + text[idx + len(MARKER) :]
        pos = idx + len(value)


def resolve_header_value(key: str, value: str, prompt: Prompt) -> str:
    """A value containing the marker is asked for once and replaced whole."""
    if MARKER in value:
        return prompt(header_message(key))
    return value


def resolve_request(request: EffectiveRequest, prompt: Prompt) -> EffectiveRequest:
    """Return a copy of request with every marker filled in."""
    if not find_placeholders(request):
        return request

    url = resolve_text(request.url, prompt)
    headers = {
        key: resolve_header_value(key, value, prompt)
        for key, value in request.headers.items()
    }
    body = request.body
    if isinstance(body, str):
        body = resolve_text(body, prompt)
    return replace(request, url=url, headers=headers, body=body)


# ── Input device ─────────────────────────────────────────────────────────


class Environment:
    """Properties of the input device, decided once per invocation."""

    def __init__(self, stdin=None, stdin_isatty: bool | None = None):
        self.stdin = stdin if stdin is not None else sys.stdin
        if stdin_isatty is None:
            isatty = getattr(self.stdin, "isatty", None)
            stdin_isatty = bool(isatty and isatty())
        self.stdin_isatty = stdin_isatty

    def read_piped(self) -> bytes:
        """Read all piped stdin bytes, or b"" when stdin is a terminal."""
        if self.stdin_isatty or self.stdin is None:
            return b""
        buffer = getattr(self.stdin, "buffer", None)
        if buffer is not None:
            return buffer.read()
        data = self.stdin.read()
        return data.encode("utf-8") if isinstance(data, str) else data


class TerminalPrompt:
    """Blocking one-line read from the interactive terminal.

    Prompts go to stderr so stdout stays clean for the response.
    """

    def __init__(self, env: Environment):
        self.env = env

    def __call__(self, message: str) -> str:
        if not self.env.stdin_isatty:
            raise InteractivityRequired("stdin is not a terminal")
        try:
            value = click.prompt(
                message,
                default="",
                show_default=False,
                prompt_suffix="",
                err=True,
            )
        except click.Abort:
            raise InteractivityRequired("input closed") from None
        return value.strip()
