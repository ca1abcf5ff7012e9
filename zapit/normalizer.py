import ipaddress
import re
from urllib.parse import unquote, unquote_to_bytes, urlsplit, urlunsplit

from .exceptions import MalformedURLError

# A '%' that does not start a two-digit hex escape
BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9_-]{1,63}(?<!-)$")
# Whitespace and C0/C1 control characters are never valid inside a URL
FORBIDDEN_RE = re.compile(r"[\s\x00-\x1f\x7f-\x9f]")

DEFAULT_SCHEME = "http"
DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}
MAX_HOST_LENGTH = 253


def percent_decode(raw: str) -> str:
    """Strictly percent-decode ``raw``.

    Unlike :func:`urllib.parse.unquote` this refuses dangling or non-hex
    escapes and escapes that do not decode to UTF-8.
    """
    m = BAD_ESCAPE_RE.search(raw)
    if m:
        raise MalformedURLError(raw, f"invalid URL escape {raw[m.start():m.start() + 3]!r}")
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError as e:
        raise MalformedURLError(raw, f"escape sequence is not valid UTF-8: {e.reason}") from e


def decode_request_target(path: bytes, query: bytes = b"") -> str:
    """Decode a raw request target the way the HTTP transport does.

    ``path`` gets one round of percent-decoding and ``query`` stays encoded.
    The bytes must then be valid UTF-8. The result is the input
    :func:`normalize` expects, so anything keyed through here matches what
    a live request for the same target looks up.
    """
    raw = unquote_to_bytes(path)
    if query:
        raw = raw + b"?" + query
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        shown = raw.decode("utf-8", "backslashreplace")
        raise MalformedURLError(shown, f"request target is not valid UTF-8: {e.reason}") from e


def _canonical_host(raw: str, host: str) -> str:
    if host.startswith("[") or ":" in host:
        try:
            return f"[{ipaddress.IPv6Address(host.strip('[]')).compressed}]"
        except ValueError as e:
            raise MalformedURLError(raw, f"invalid IPv6 host: {e}") from e
    try:
        return str(ipaddress.IPv4Address(host))
    except ValueError:
        pass
    host = host.rstrip(".")
    try:
        ascii_host = host.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise MalformedURLError(raw, f"invalid host {host!r}: {e}") from e
    if not ascii_host or len(ascii_host) > MAX_HOST_LENGTH:
        raise MalformedURLError(raw, "invalid host length")
    for label in ascii_host.split("."):
        if not LABEL_RE.match(label):
            raise MalformedURLError(raw, f"invalid host label {label!r}")
    return ascii_host.lower()


def normalize(raw: str) -> str:
    """Return the canonical form of ``raw`` or raise :class:`MalformedURLError`.

    ``raw`` is the request path remainder after the route prefix, possibly
    percent-encoded. A bare ``host/path`` without a scheme is accepted and
    gets the ``http`` scheme. The returned string is decoded; escaping for
    transport happens at the response boundary.
    """
    if not isinstance(raw, str) or not raw:
        raise MalformedURLError(raw if isinstance(raw, str) else repr(raw), "empty URL")
    decoded = percent_decode(raw)
    if not decoded:
        raise MalformedURLError(raw, "empty URL")
    if FORBIDDEN_RE.search(decoded):
        raise MalformedURLError(raw, "URL contains whitespace or control characters")

    candidate = decoded if SCHEME_RE.match(decoded) else f"{DEFAULT_SCHEME}://{decoded}"
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as e:
        raise MalformedURLError(raw, str(e)) from e
    host = parts.hostname
    if not host:
        raise MalformedURLError(raw, "missing host")

    scheme = parts.scheme.lower()
    netloc = _canonical_host(raw, host)
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    # userinfo and fragment never identify the resource being checked
    return urlunsplit((scheme, netloc, parts.path, parts.query, ""))
