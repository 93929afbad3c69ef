"""
================================================================================
OTP Extraction
================================================================================

Decoding of Gmail API message payloads and extraction of one-time codes
(verification / password reset codes) from the decoded text.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import base64
import re
from typing import Any, Dict, List, Optional, Pattern


# Ordered: the first pattern with a match wins
OTP_PATTERNS: List[Pattern[str]] = [
    re.compile(r"verification code[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"code[:\s]+is[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"code[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"otp[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"your code[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"password reset code[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
    re.compile(r"reset code[:\s]+(\d{4,6})", re.IGNORECASE | re.ASCII),
]

STANDALONE_CODE = re.compile(r"\b(\d{4,6})\b", re.ASCII)

_TAG_RE = re.compile(r"</?[^>]+(>|$)")
_WHITESPACE_RE = re.compile(r"\s+")


def decode_base64url(data: Optional[str]) -> str:
    """Decode a base64url string (as used by the Gmail API) to text."""
    if not data:
        return ""
    normalized = data.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized).decode("utf-8", errors="replace")


def decode_body(message: Optional[Dict[str, Any]]) -> str:
    """
    Extract the text body of a Gmail API message resource.

    Lookup order:
        1. ``payload.body.data``
        2. the first part that is ``text/plain`` or ``text/html`` with data
        3. nested ``parts`` (multipart/alternative inside multipart/mixed)

    Args:
        message: Message resource as returned by ``users.messages.get``

    Returns:
        Decoded body, or an empty string when nothing is found
    """
    if not message or not message.get("payload"):
        return ""

    payload = message["payload"]

    body_data = (payload.get("body") or {}).get("data")
    if body_data:
        return decode_base64url(body_data)

    for part in payload.get("parts") or []:
        part_data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/plain" and part_data:
            return decode_base64url(part_data)
        if part.get("mimeType") == "text/html" and part_data:
            return decode_base64url(part_data)
        if part.get("parts"):
            nested = decode_body({"payload": part})
            if nested:
                return nested

    return ""


def clean_email_text(body: str) -> str:
    """Strip HTML tags, collapse whitespace and lower-case."""
    text = _TAG_RE.sub("", body or "")
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip().lower()


def extract_otp(content: str) -> Optional[str]:
    """
    Extract a 4-6 digit code from email content.

    Known phrasings are tried first; otherwise the first standalone
    4-6 digit number is returned.

    Args:
        content: Subject and cleaned body

    Returns:
        The code, or None when the content holds no candidate
    """
    for pattern in OTP_PATTERNS:
        match = pattern.search(content)
        if match and match.group(1):
            return match.group(1)

    standalone = STANDALONE_CODE.search(content)
    if standalone:
        return standalone.group(1)
    return None


__all__ = [
    "OTP_PATTERNS",
    "decode_base64url",
    "decode_body",
    "clean_email_text",
    "extract_otp",
]
