"""Ownership resolution against a target collection identifier.

Pure and deterministic: no I/O, no state. Records are checked in order. Each
one is normalized to a ``CanonicalToken`` and tried against the rules below,
most trustworthy first; the first record that matches any rule decides.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tokengate.core.config import settings
from tokengate.core.metrics import track_ownership_match
from tokengate.ownership.records import CanonicalToken, normalize_identifier, normalize_token_record

logger = logging.getLogger(__name__)


class MatchRule(str, Enum):
    """Ownership rules, most trustworthy first."""

    COLLECTION_ID = "collection_id"
    FLAT_FIELD = "flat_field"
    STRUCTURED_TOKEN_ID = "structured_token_id"
    TOKEN_ID_SEGMENT = "token_id_segment"
    TOKEN_ID_SUBSTRING = "token_id_substring"


@dataclass(frozen=True)
class OwnershipMatch:
    """Which record matched and by which rule."""

    record_index: int
    rule: MatchRule


def _match_rule(token: CanonicalToken, target: str, allow_substring_match: bool) -> MatchRule | None:
    if target in token.collection_ids:
        return MatchRule.COLLECTION_ID
    if target in token.flat_values:
        return MatchRule.FLAT_FIELD
    if target in token.structured_values:
        return MatchRule.STRUCTURED_TOKEN_ID
    if target in token.segment_values:
        return MatchRule.TOKEN_ID_SEGMENT
    if allow_substring_match and any(target in raw_id for raw_id in token.raw_ids):
        return MatchRule.TOKEN_ID_SUBSTRING
    return None


def find_match(
    records: Iterable[Any],
    target: str,
    allow_substring_match: bool | None = None,
) -> OwnershipMatch | None:
    """
    Find the first record proving ownership of the target collection.

    Args:
        records: Raw token payloads or parsed token records
        target: Collection address/ID or creator address
        allow_substring_match: Enable the loose substring rule. Defaults to
            OWNERSHIP_SUBSTRING_FALLBACK_ENABLED.

    Returns:
        OwnershipMatch, or None when nothing matches (including an empty
        record list or a blank target)
    """
    normalized_target = normalize_identifier(target)
    if normalized_target is None:
        return None

    if allow_substring_match is None:
        allow_substring_match = settings.OWNERSHIP_SUBSTRING_FALLBACK_ENABLED

    for index, record in enumerate(records):
        token = normalize_token_record(record)
        rule = _match_rule(token, normalized_target, allow_substring_match)
        if rule is None:
            continue

        if rule is MatchRule.TOKEN_ID_SUBSTRING:
            # Loose rule; known to produce false positives
            logger.debug(
                "Ownership matched via token id substring",
                extra={
                    "event_type": "ownership.substring_match",
                    "target": normalized_target,
                    "token_data_ids": list(token.raw_ids),
                },
            )
        track_ownership_match(rule.value)
        return OwnershipMatch(record_index=index, rule=rule)

    return None


def resolve(
    records: Iterable[Any],
    target: str,
    allow_substring_match: bool | None = None,
) -> bool:
    """Return True if any record proves ownership of the target collection."""
    return find_match(records, target, allow_substring_match) is not None
