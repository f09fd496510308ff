# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import re
from typing import Any

_REDACTED = "***REDACTED***"

_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Payment card numbers, with or without separators
    (re.compile(r"\b(?:\d[ -]?){12,15}(\d{4})\b"), r"****-\1"),
    (re.compile(r"(cvv|cvc)(\s*[:=]\s*)\d{3,4}", re.IGNORECASE), rf"\1\2{_REDACTED}"),
    # Service credentials
    (re.compile(r"(bearer\s+)[\w\-.]{16,}", re.IGNORECASE), rf"\1{_REDACTED}"),
    (
        re.compile(r"((?:api|secret)[_-]?key\s*[:=]\s*['\"]?)[\w\-]{16,}", re.IGNORECASE),
        rf"\1{_REDACTED}",
    ),
    (re.compile(r"(authorization\s*:\s*['\"]?)[^'\"\s]{10,}", re.IGNORECASE), rf"\1{_REDACTED}"),
    # Database URLs with a password
    (
        re.compile(r"((?:postgresql|postgres|mysql)(?:\+\w+)?://[^:/@]+:)[^@]+@"),
        rf"\1{_REDACTED}@",
    ),
    # Customer e-mail addresses keep only the domain
    (re.compile(r"[\w.%+-]+@([\w-]+(?:\.[\w-]+)*\.[a-zA-Z]{2,})"), r"***@\1"),
]


def sanitize_message(message: str) -> str:
    for pattern, replacement in _PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def sanitize_record(record: dict[str, Any]) -> bool:
    """Loguru filter: scrub the message in place and always keep the record."""

    record["message"] = sanitize_message(record["message"])
    return True
