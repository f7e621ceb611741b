import base64
import json
from dataclasses import dataclass
from typing import Any, Final

from src.gatekeeper.core.errors import TokenInvalid

# ---------------- tunables ----------------
MAX_JWT_CHARS: Final = 4096
MAX_SEGMENT_CHARS: Final = 4096
MAX_HEADER_BYTES: Final = 8 * 1024
MAX_PAYLOAD_BYTES: Final = 64 * 1024
_ALLOWED: Final = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_."
)  # no '='


# --------------- one-pass prefilter ---------------
def prefilter_compact_jwt(token: str) -> tuple[str, str, str]:
    """Reject anything that is not a plausible compact JWS before any crypto."""
    if not token or len(token) > MAX_JWT_CHARS:
        raise TokenInvalid("invalid JWT size")
    first = second = -1
    for i, ch in enumerate(token):
        if ch not in _ALLOWED:
            raise TokenInvalid("invalid JWT characters")
        if ch == ".":
            if first < 0:
                first = i
            elif second < 0:
                second = i
            else:
                raise TokenInvalid("invalid JWT format")
    # exactly two dots and non-empty segments
    if first <= 0 or second - first <= 1 or second >= len(token) - 1:
        raise TokenInvalid("invalid JWT format")
    h, p, s = token[:first], token[first + 1 : second], token[second + 1 :]
    if max(len(h), len(p), len(s)) > MAX_SEGMENT_CHARS:
        raise TokenInvalid("invalid JWT segment size")
    return h, p, s


def _b64url_decode_unpadded(seg: str, what: str, max_bytes: int) -> bytes:
    pad = (-len(seg)) % 4
    try:
        raw = base64.urlsafe_b64decode((seg + "=" * pad).encode("ascii"))
    except ValueError as e:
        raise TokenInvalid(f"invalid base64url in {what}") from e
    if len(raw) > max_bytes:
        raise TokenInvalid(f"{what} too large")
    return raw


def _decode_json_object(raw: bytes, what: str) -> dict[str, Any]:
    try:
        obj = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise TokenInvalid(f"non-UTF8 {what}") from e
    except json.JSONDecodeError as e:
        raise TokenInvalid(f"invalid JSON in {what}") from e
    if not isinstance(obj, dict):
        raise TokenInvalid(f"{what} must be a JSON object")
    return obj


@dataclass(frozen=True)
class JwtPreview:
    """Unverified view of a token, used only to route verification."""

    header: dict[str, Any]
    claims: dict[str, Any]
    alg: str | None
    kid: str | None
    iss: str | None


def preview_jwt(token: str) -> JwtPreview:
    """Split and decode header+payload exactly once."""
    h_seg, p_seg, _ = prefilter_compact_jwt(token)
    header = _decode_json_object(
        _b64url_decode_unpadded(h_seg, "JWT header", MAX_HEADER_BYTES), "JWT header"
    )
    claims = _decode_json_object(
        _b64url_decode_unpadded(p_seg, "JWT payload", MAX_PAYLOAD_BYTES), "JWT payload"
    )
    iss = claims.get("iss")
    iss = iss.rstrip("/") if isinstance(iss, str) and iss else None

    kid = header.get("kid")
    alg = header.get("alg")
    return JwtPreview(
        header=header,
        claims=claims,
        alg=alg if isinstance(alg, str) else None,
        kid=kid if isinstance(kid, str) else None,
        iss=iss,
    )
