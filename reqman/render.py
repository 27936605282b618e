"""reqman render - response and request formatting for CLI output."""

from __future__ import annotations

import json

from reqman.models import EffectiveRequest, Response


def parse_json(body: bytes | str):
    """Try to parse a body as JSON. Returns (ok, value); never raises."""
    try:
        return True, json.loads(body)
    except (ValueError, TypeError):
        return False, None


def format_body(response: Response) -> str:
    """Pretty JSON if the body parses, else the body text unchanged."""
    ok, value = parse_json(response.body)
    if ok:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return response.text


def format_output(
    response: Response,
    verbose: bool = False,
    stream: bool = False,
) -> str | bytes:
    """Format a response for CLI output.

    stream  - raw body bytes, verbatim; no parsing, verbose ignored
    verbose - STATUS/TIME/HEADERS block before the body, headers in
              received order
    """
    if stream:
        return response.body

    body = format_body(response)
    if not verbose:
        return body

    status = f"STATUS: {response.status_code}"
    if response.reason:
        status += f" {response.reason}"
    lines = [status, f"TIME: {int(response.elapsed_ms)}ms"]
    if response.headers:
        lines.append("HEADERS:")
        for key, value in response.headers.items():
            lines.append(f"  {key}: {value}")
    lines.append("BODY:")
    lines.append(body)
    return "\n".join(lines)


def format_request(request: EffectiveRequest) -> str:
    """Verbose echo of what is about to be sent."""
    lines = [f"{request.method} {request.url}"]
    if request.headers:
        lines.append("REQUEST HEADERS:")
        for key, value in request.headers.items():
            lines.append(f"  {key}: {value}")
    if request.files:
        lines.append("REQUEST BODY: multipart/form-data")
        for field, (filename, content, mime) in request.files.items():
            lines.append(f"  {field}: {filename} ({mime}, {len(content)} bytes)")
    elif isinstance(request.body, bytes):
        lines.append(f"REQUEST BODY: {len(request.body)} bytes")
    elif request.body is not None:
        lines.append("REQUEST BODY:")
        lines.append(request.body)
    return "\n".join(lines)
