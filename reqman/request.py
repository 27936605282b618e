"""reqman request - assemble the effective request from saved or ad-hoc input."""

from __future__ import annotations

import shlex
from dataclasses import replace
from typing import NamedTuple

import filetype

from reqman.core import get_endpoint, join_url, merge_headers
from reqman.errors import UnknownFileType
from reqman.models import Collection, EffectiveRequest, Method
from reqman.placeholders import Prompt, resolve_request

MULTIPART_FIELD = "file"


class BodySource(NamedTuple):
    body: str | bytes | None
    files: dict | None
    resolve: bool  # run placeholder resolution over the request


def assemble_saved(
    collections: dict[str, Collection],
    collection_name: str,
    endpoint_name: str,
) -> EffectiveRequest:
    """Build the unresolved request for a saved endpoint."""
    col, ep = get_endpoint(collections, collection_name, endpoint_name)
    return EffectiveRequest(
        method=ep.method.value,
        url=join_url(col.url, ep.path),
        headers=merge_headers(col.headers, ep.headers),
        body=ep.body,
    )


def assemble_ad_hoc(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: str | None = None,
) -> EffectiveRequest:
    """Build the unresolved request for a direct `req` command."""
    return EffectiveRequest(
        method=Method.parse(method).value,
        url=url,
        headers=dict(headers or {}),
        body=body,
    )


def binary_upload(data: bytes) -> dict[str, tuple[str, bytes, str]]:
    """Multipart `files=` payload for binary data, named after its detected type."""
    kind = filetype.guess(data)
    if kind is None:
        raise UnknownFileType(len(data))
    return {MULTIPART_FIELD: (f"file.{kind.extension}", data, kind.mime)}


def select_body_source(
    body: str | None,
    piped: bytes,
    stream: bool,
) -> BodySource:
    """Decide what goes out as the body.

    Precedence:
      1. piped stdin bytes (raw in stream mode, text if UTF-8, else a
         multipart upload typed by content)
      2. stream mode: the configured body as raw bytes
      3. the configured body string, with placeholders resolved
    """
    if piped:
        if stream:
            return BodySource(piped, None, False)
        try:
            return BodySource(piped.decode("utf-8"), None, False)
        except UnicodeDecodeError:
            return BodySource(None, binary_upload(piped), False)

    if stream:
        return BodySource(body.encode("utf-8") if body is not None else None, None, False)

    return BodySource(body, None, True)


def build_request(
    request: EffectiveRequest,
    piped: bytes = b"",
    stream: bool = False,
    prompt: Prompt | None = None,
) -> EffectiveRequest:
    """Apply body sourcing and placeholder resolution to an assembled request.

    Resolution is skipped entirely when stream mode is on or stdin is piped;
    the markers then go out literally.
    """
    source = select_body_source(request.body, piped, stream)
    request = replace(request, body=source.body, files=source.files, stream=stream)
    if source.resolve and prompt is not None:
        request = resolve_request(request, prompt)
    return request


def to_command_line(request: EffectiveRequest, prog: str = "reqman") -> str:
    """Render an unresolved request as the equivalent `req` command line."""
    parts = [prog, "req", "-v", request.method.lower(), shlex.quote(request.url)]
    for key, value in request.headers.items():
        parts.extend(["-H", shlex.quote(f"{key}: {value}")])
    if isinstance(request.body, str):
        parts.extend(["-b", shlex.quote(request.body)])
    return " ".join(parts)
