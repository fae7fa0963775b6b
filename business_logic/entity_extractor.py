"""
Entity extraction for free-text planning commands.

Stateless helpers that pull money amounts, client names, row references,
percentages, date shifts and vendor identities out of raw user text.
Unparseable input yields None (or a documented default) instead of raising.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from models.data_models import Channel
from data.reference_tables import (
    VENDOR_LOOKUP, TV_NETWORKS, UNSUPPORTED_CHANNELS, UNSUPPORTED_ALTERNATIVES,
    DEFAULT_ALTERNATIVE
)

logger = logging.getLogger(__name__)

MONEY_PATTERN = re.compile(
    r'(\$)?\s*(\d+(?:,\d{3})*(?:\.\d+)?)(?:\s*(mm|m|k|thousand|million)\b)?',
    re.IGNORECASE
)

SUFFIX_MULTIPLIERS = {
    'k': 1_000,
    'thousand': 1_000,
    'm': 1_000_000,
    'mm': 1_000_000,
    'million': 1_000_000,
}

CLIENT_NAME_PATTERN = re.compile(r'\bfor\s+(.+?)(?:\s*\(|\s*\$|\s+\d|$)', re.IGNORECASE)
ROW_PATTERN = re.compile(r'\brow\s*#?\s*(\d+)\b', re.IGNORECASE)
PERCENT_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*(?:%|percent\b)', re.IGNORECASE)
DELAY_PATTERN = re.compile(
    r'\bdelay\b.*?\bby\s+(\d+)\s+(day|week|month)s?\b', re.IGNORECASE
)
DATE_RANGE_PATTERN = re.compile(
    r'\bfrom\s+(\d{1,2}/\d{1,2}/\d{4})\s+(?:to|until|through|-)\s+(\d{1,2}/\d{1,2}/\d{4})',
    re.IGNORECASE
)

# Words dropped from the end of a vendor phrase before lookup
VENDOR_NOISE_WORDS = ('ads', 'ad', 'placements', 'placement', 'campaign', 'buy')


@dataclass(frozen=True)
class VendorMatch:
    """Resolved identity of a vendor phrase."""
    channel: Channel
    vendor: str
    program: Optional[str] = None


def parse_money(text: str) -> Optional[float]:
    """
    Parse the first money amount found in text.

    Accepts an optional leading "$", thousands separators and a trailing
    k / m / mm / thousand / million suffix.

    Args:
        text: Raw text to search

    Returns:
        The amount in currency units, or None when nothing matches
    """
    if not text:
        return None

    match = MONEY_PATTERN.search(text)
    if not match:
        return None

    value = float(match.group(2).replace(',', ''))
    suffix = match.group(3)
    if suffix:
        value *= SUFFIX_MULTIPLIERS[suffix.lower()]
    return value


def extract_budget_amount(text: str, default: float = 100000.0) -> float:
    """Extract a campaign budget, falling back to default when unparseable."""
    amount = parse_money(text)
    if amount is None or amount <= 0:
        logger.info(f"No budget found in '{text}', using default {default}")
        return default
    return amount


def format_currency(amount: float) -> str:
    """Format an amount as "$1,234" or "$1,234.56"."""
    rounded = round(amount, 2)
    if rounded == int(rounded):
        return f"${int(rounded):,}"
    return f"${rounded:,.2f}"


def extract_client_name(text: str) -> str:
    """
    Extract the client name from a plan request.

    Uses "for <name>" up to a "$", a digit or "(", else the fourth word
    when it holds no digits, else "Client".
    """
    match = CLIENT_NAME_PATTERN.search(text)
    if match:
        name = match.group(1).strip().strip('.,;:!?"\'')
        if name:
            return name

    words = text.split()
    if len(words) > 3 and not any(ch.isdigit() for ch in words[3]):
        return words[3].strip('.,;:!?"\'()')

    return "Client"


def extract_row_reference(text: str) -> Optional[Tuple[int, str]]:
    """
    Extract a 1-based "row N" reference.

    Returns:
        Tuple of (row, text after the reference), or None without a row
    """
    match = ROW_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1)), text[match.end():]


def extract_percentage(text: str) -> Optional[float]:
    """Extract a percentage such as "15%" or "15 percent"."""
    match = PERCENT_PATTERN.search(text)
    return float(match.group(1)) if match else None


def extract_delay(text: str) -> Tuple[int, str]:
    """
    Extract a start-date delay.

    Returns:
        Tuple of (amount, unit) where unit is "day", "week" or "month".
        Defaults to one month when no explicit duration is given.
    """
    match = DELAY_PATTERN.search(text)
    if match:
        return int(match.group(1)), match.group(2).lower()
    return 1, "month"


def extract_date_range(text: str) -> Optional[Tuple[date, date]]:
    """Extract a "from m/d/yyyy to m/d/yyyy" flight window."""
    match = DATE_RANGE_PATTERN.search(text)
    if not match:
        return None

    try:
        start = datetime.strptime(match.group(1), "%m/%d/%Y").date()
        end = datetime.strptime(match.group(2), "%m/%d/%Y").date()
    except ValueError:
        logger.warning(f"Unparseable date range in '{text}'")
        return None

    if end < start:
        return None
    return start, end


def find_unsupported_channel(text: str) -> Optional[str]:
    """Return the first denylisted channel term mentioned in text."""
    lowered = text.lower()
    for term in UNSUPPORTED_CHANNELS:
        if re.search(r'\b' + re.escape(term) + r'\b', lowered):
            return term
    return None


def unsupported_alternative(term: str) -> str:
    """Suggest an alternative channel for a denylisted term."""
    return UNSUPPORTED_ALTERNATIVES.get(term, DEFAULT_ALTERNATIVE)


def _strip_noise(token: str) -> str:
    words = token.split()
    while len(words) > 1 and words[-1].lower() in VENDOR_NOISE_WORDS:
        words.pop()
    return ' '.join(words)


def classify_vendor(phrase: str) -> VendorMatch:
    """
    Resolve a free-text vendor phrase to a channel and display name.

    Known platform tokens are looked up exactly, then TV networks are found
    anywhere in the phrase (text after the network becomes the program),
    and anything else is treated as a TV buy with a title-cased vendor.
    """
    cleaned = ' '.join(phrase.split())
    token = cleaned.lower()

    for candidate in (token, _strip_noise(token)):
        entry = VENDOR_LOOKUP.get(candidate)
        if entry:
            return VendorMatch(entry.channel, entry.display_name)

    for key, network_name in TV_NETWORKS:
        match = re.search(r'\b' + re.escape(key) + r'\b', token)
        if match:
            program = cleaned[match.end():].strip()
            program = _strip_noise(program) if program else ''
            if program.lower() in VENDOR_NOISE_WORDS:
                program = ''
            return VendorMatch(Channel.TV, network_name, program or None)

    return VendorMatch(Channel.TV, cleaned.title())
