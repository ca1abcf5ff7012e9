"""Verdict model shared by the scanner, the storage backends and the routes."""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict
from urllib.parse import quote_plus

from .exceptions import SerializationError


@dataclass(frozen=True)
class URLInfo:
    """Safety verdict for a single canonical URL."""

    url: str
    malicious: bool = False

    def with_url(self, url: str) -> "URLInfo":
        return replace(self, url=url)

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "malicious": self.malicious}

    def to_json(self) -> str:
        """Serialize for storage. The URL is kept in decoded canonical form."""
        try:
            return json.dumps(self.to_dict())
        except (TypeError, ValueError) as e:
            raise SerializationError(f"cannot encode verdict for {self.url!r}: {e}") from e

    def to_response(self) -> Dict[str, Any]:
        """Body for HTTP responses; the URL is query-escaped for transport."""
        return {"url": quote_plus(self.url, safe=""), "malicious": self.malicious}

    @classmethod
    def from_json(cls, data) -> "URLInfo":
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise SerializationError(f"stored verdict is not valid UTF-8: {e}") from e
        try:
            obj = json.loads(data)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"stored verdict is not valid JSON: {e}") from e
        if not isinstance(obj, dict) or not isinstance(obj.get("malicious"), bool):
            raise SerializationError(f"stored verdict has unexpected shape: {obj!r}")
        return cls(url=str(obj.get("url") or ""), malicious=obj["malicious"])
