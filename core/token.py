"""
Session token claim decoding.

Claims are read WITHOUT verifying the signature. The result only drives
navigation hints on the client; the inventory service authorizes every
request on its own.
"""

import base64
import binascii
import json
import math
from typing import Dict, Any

from .exceptions import TokenDecodeError


def _decode_segment(segment: str) -> bytes:
    """Decode a base64url segment, restoring stripped padding"""
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode_claims(token: str) -> Dict[str, Any]:
    """
    Decode the payload segment of a JWT-shaped token.

    Args:
        token: Compact token ("header.payload.signature")

    Returns:
        Claims dictionary

    Raises:
        TokenDecodeError: If the token is structurally invalid
    """
    if not isinstance(token, str) or not token:
        raise TokenDecodeError("Token is empty")

    parts = token.split(".")
    if len(parts) != 3:
        raise TokenDecodeError(f"Token has {len(parts)} segments, expected 3")

    try:
        claims = json.loads(_decode_segment(parts[1]).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError, RecursionError) as e:
        raise TokenDecodeError(f"Token payload is not valid JSON: {e}")

    if not isinstance(claims, dict):
        raise TokenDecodeError("Token payload is not an object")

    return claims


def get_expiry(token: str) -> float:
    """Return the `exp` claim in seconds since the epoch"""
    claims = decode_claims(token)
    exp = claims.get("exp")

    # bool is an int subclass but never a valid expiry
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenDecodeError("Token has no numeric 'exp' claim")
    try:
        expiry = float(exp)
    except OverflowError:
        raise TokenDecodeError("Token 'exp' claim is out of range")

    # NaN and infinity compare inconsistently against the clock
    if not math.isfinite(expiry):
        raise TokenDecodeError(f"Token 'exp' claim is not finite: {exp}")

    return expiry


def is_token_expired(token: str, now: float) -> bool:
    """
    Check whether a token is expired at `now` (seconds).

    Undecodable tokens count as expired.
    """
    try:
        return now >= get_expiry(token)
    except TokenDecodeError:
        return True
