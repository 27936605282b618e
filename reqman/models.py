"""reqman models - collections, endpoints, and the transient request/response."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Method(str, Enum):
    """HTTP methods an endpoint can be saved with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, value: str) -> Method:
        """Case-insensitive lookup. Raises ValueError on unknown methods."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid HTTP method: {value}") from None

    def __str__(self) -> str:
        return self.value


@dataclass
class Endpoint:
    name: str
    path: str
    method: Method = Method.GET
    headers: dict[str, str] = field(default_factory=dict)
    # None = no body entity, "" = zero-length body
    body: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "method": self.method.value,
            "headers": dict(self.headers),
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> Endpoint:
        body = data.get("body")
        if body is not None and not isinstance(body, str):
            raise ValueError(f"endpoint '{name}': body must be a string or null")
        return cls(
            name=name,
            path=str(data.get("path") or ""),
            method=Method.parse(str(data.get("method") or "GET")),
            headers=_header_dict(data.get("headers"), f"endpoint '{name}'"),
            body=body,
        )


@dataclass
class Collection:
    name: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    endpoints: dict[str, Endpoint] = field(default_factory=dict)

    def get_endpoint(self, name: str) -> Endpoint | None:
        return self.endpoints.get(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "headers": dict(self.headers),
            "endpoints": {name: ep.to_dict() for name, ep in self.endpoints.items()},
        }

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> Collection:
        if not isinstance(data, dict):
            raise ValueError(f"collection '{name}' must be an object")
        raw_endpoints = data.get("endpoints") or {}
        if not isinstance(raw_endpoints, dict):
            raise ValueError(f"collection '{name}': endpoints must be an object")
        endpoints = {}
        for ep_name, ep_data in raw_endpoints.items():
            if not isinstance(ep_data, dict):
                raise ValueError(f"endpoint '{ep_name}' must be an object")
            endpoints[ep_name] = Endpoint.from_dict(ep_name, ep_data)
        return cls(
            name=name,
            url=str(data.get("url") or ""),
            headers=_header_dict(data.get("headers"), f"collection '{name}'"),
            endpoints=endpoints,
        )


@dataclass
class EffectiveRequest:
    """A fully assembled request. Derived per invocation, never persisted."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | bytes | None = None
    # multipart payload in requests' ``files=`` shape
    files: dict[str, tuple[str, bytes, str]] | None = None
    stream: bool = False


@dataclass
class Response:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    reason: str = ""
    elapsed_ms: float = 0
    url: str = ""
    # charset from the response headers, as reported by requests
    encoding: str | None = None

    @property
    def text(self) -> str:
        """Body as text: UTF-8, then the declared charset, then lossy UTF-8."""
        for charset in ("utf-8", self.encoding):
            if not charset:
                continue
            try:
                return self.body.decode(charset)
            except (LookupError, UnicodeDecodeError):
                continue
        return self.body.decode("utf-8", errors="replace")


def _header_dict(value: Any, where: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{where}: headers must be an object")
    return {str(k): str(v) for k, v in value.items()}
