"""
Attribute Deriver - Extra descriptive traits computed from a record.

Pure functions: the input record is never modified.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from corpus_normalizer.config import NormalizeOptions


TYPE_TRAIT = "Type"
MINT_DATE_TRAIT = "Original Mint Date"
CLASSIFICATIONS = ("Classic", "Named")

# Set on every normalized record; its presence means the input is our own output.
RENORMALIZED_MARKER = "original_creation_date"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)

PROVENANCE_SENTENCE = "This NFT was originally created on the {storefront} on {date}."


def format_mint_date(ts: datetime) -> str:
    """en-US long date in UTC, e.g. ``January 5, 2022``."""
    ts = ts.astimezone(timezone.utc)
    return f"{MONTH_NAMES[ts.month - 1]} {ts.day}, {ts.year}"


def classify_name(name: str, pattern: str) -> str:
    return "Classic" if re.search(pattern, name or "") else "Named"


def _strip_derived(
    attributes: list[dict[str, Any]],
    provenance_timestamp: Optional[datetime],
    options: NormalizeOptions,
) -> None:
    """Drop the trailing traits an earlier pass appended with the same options."""
    if (
        options.inject_mint_date
        and provenance_timestamp is not None
        and attributes
        and attributes[-1].get("trait_type") == MINT_DATE_TRAIT
    ):
        attributes.pop()

    if (
        options.classify_names
        and attributes
        and attributes[-1].get("trait_type") == TYPE_TRAIT
        and attributes[-1].get("value") in CLASSIFICATIONS
    ):
        attributes.pop()


def derive_attributes(
    record: dict[str, Any],
    provenance_timestamp: Optional[datetime],
    options: NormalizeOptions,
) -> list[dict[str, Any]]:
    """
    Return the record's attributes with derived traits applied.

    Derived traits are always appended last, Type before Original Mint Date.
    When the record is already normalized output those trailing traits are
    replaced rather than stacked. Native traits with the same names are kept.
    """
    attributes = [dict(a) for a in record.get("attributes") or []]
    if RENORMALIZED_MARKER in record:
        _strip_derived(attributes, provenance_timestamp, options)

    if options.classify_names:
        attributes.append({
            "trait_type": TYPE_TRAIT,
            "value": classify_name(record.get("name", ""), options.classic_name_pattern),
        })

    if options.inject_mint_date and provenance_timestamp is not None:
        attributes.append({
            "trait_type": MINT_DATE_TRAIT,
            "value": format_mint_date(provenance_timestamp),
        })

    return attributes


def describe_provenance(
    description: Optional[str],
    provenance_timestamp: Optional[datetime],
    options: NormalizeOptions,
) -> str:
    """Append the provenance sentence when a mint date is known."""
    description = description or ""
    if not options.inject_mint_date or provenance_timestamp is None:
        return description

    sentence = PROVENANCE_SENTENCE.format(
        storefront=options.storefront_name,
        date=format_mint_date(provenance_timestamp),
    )
    if description.endswith(sentence):
        return description
    return f"{description}\n\n{sentence}"
