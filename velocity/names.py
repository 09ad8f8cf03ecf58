"""
Client name normalisation
=========================

Harvest project and client names carry billing noise: pack numbers, part
numbers, year tags ("'25") and "Hours" suffixes. Both feeds are keyed on the
canonical name produced here, so the function must stay pure and identical for
time entries and budget records.

Examples
--------
"Client Name Hours '25 Pack #1"  -> "Client Name"
"Complex Client '24 Pack #3 Pt 1" -> "Complex Client"
"Simple Client Name"             -> "Simple Client Name"
"Pack #2"                        -> "Unknown Client"
"""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple


UNKNOWN_CLIENT = "Unknown Client"

# Applied in order; every match becomes a single space.
NOISE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\s*'[0-9]{2}\s*"),               # '25, '24 ...
    re.compile(r"\s*Pack\s*#?\d*\s*", re.I),      # Pack #1, Pack 2
    re.compile(r"\s*\bPt\s*\d*\s*", re.I),        # Pt 1
    re.compile(r"\s*\bPart\s*\d*\s*", re.I),      # Part 2
    re.compile(r"\s*\bHours\b\s*", re.I),
    re.compile(r"\s*\bPack\b\s*", re.I),
    re.compile(r"\s*\bPt\b\s*", re.I),
    re.compile(r"\s*\bPart\b\s*", re.I),
]

# First keyword in this list that occurs anywhere wins, regardless of position.
SPLIT_KEYWORDS: Tuple[str, ...] = (
    "hours", "Hours", "HOURS",
    "pack", "Pack", "PACK",
    "'25", "'24", "'23", "'22", "'21", "'20",
    "'26", "'27", "'28", "'29", "'30",
)

_WHITESPACE = re.compile(r"\s+")
_ONLY_DIGITS = re.compile(r"^[0-9\s]+$")

TRAILING_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\s+\d+$"),          # trailing number
    re.compile(r"\s+\([^)]*\)$"),    # trailing (...)
    re.compile(r"\s+-\s*$"),         # trailing dash
]


def _strip_noise(name: str) -> str:
    for pattern in NOISE_PATTERNS:
        name = pattern.sub(" ", name)
    return name


def _split_on_keyword(name: str) -> str:
    for keyword in SPLIT_KEYWORDS:
        if keyword in name:
            return name.split(keyword, 1)[0]
    return name


def _tidy(name: str) -> str:
    name = _WHITESPACE.sub(" ", name).strip()
    return _ONLY_DIGITS.sub("", name)


def normalize_client_name(display_name) -> str:
    """
    Map a noisy project/client display name to its canonical client name.
    Never raises; empty or non-string input gives UNKNOWN_CLIENT.
    """
    if not display_name or not isinstance(display_name, str):
        return UNKNOWN_CLIENT

    name = _strip_noise(display_name)
    name = _split_on_keyword(name)
    name = _tidy(name)
    for pattern in TRAILING_PATTERNS:
        name = pattern.sub("", name)

    name = name.strip()
    return name or UNKNOWN_CLIENT


def entry_display_name(client_display_name, project_name) -> str:
    """The name a record is keyed on: its client name, else its project name."""
    if isinstance(client_display_name, str) and client_display_name.strip():
        return client_display_name
    return project_name
