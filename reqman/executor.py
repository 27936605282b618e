"""reqman executor - HTTP request execution."""

import time
from collections.abc import Callable
from typing import Any

import requests

from reqman.errors import NetworkError
from reqman.models import EffectiveRequest, Response

STREAM_CHUNK_SIZE = 8192


def execute_request(
    request: EffectiveRequest,
    timeout: float | None = None,
    follow_redirects: bool = True,
    on_chunk: Callable[[bytes], None] | None = None,
) -> Response:
    """Send one request and return the response.

    - One round trip, no retries
    - Any HTTP status is a normal Response, 4xx/5xx included
    - Transport failures raise NetworkError

    When request.files is set, sends multipart/form-data instead of a raw body.
    When request.stream is set and on_chunk is given, the body is handed to
    on_chunk as it arrives and the returned Response carries no body.
    """
    kwargs: dict[str, Any] = {
        "method": request.method.upper(),
        "url": request.url,
        "timeout": timeout,
        "allow_redirects": follow_redirects,
        "stream": request.stream,
    }

    if request.files:
        # Let requests set the multipart boundary
        req_headers = {
            k: v for k, v in request.headers.items() if k.lower() != "content-type"
        }
        kwargs["headers"] = req_headers
        kwargs["files"] = request.files
    else:
        kwargs["headers"] = request.headers
        body = request.body
        kwargs["data"] = body.encode("utf-8") if isinstance(body, str) else body

    try:
        start = time.monotonic()
        resp = requests.request(**kwargs)
        if request.stream and on_chunk is not None:
            with resp:
                for chunk in resp.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                    if chunk:
                        on_chunk(chunk)
            content = b""
        else:
            content = resp.content
        elapsed_ms = (time.monotonic() - start) * 1000
    except requests.exceptions.Timeout as e:
        raise NetworkError(f"Request timed out after {timeout}s: {e}") from e
    except requests.exceptions.ConnectionError as e:
        raise NetworkError(f"Connection error: {e}") from e
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"Request failed: {e}") from e

    return Response(
        status_code=resp.status_code,
        headers=dict(resp.headers),
        body=content,
        reason=resp.reason or "",
        elapsed_ms=elapsed_ms,
        url=resp.url,
        encoding=resp.encoding,
    )
