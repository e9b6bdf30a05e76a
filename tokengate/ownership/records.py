"""Token record shapes and normalization.

Chain responses describe ownership in several incompatible shapes depending
on which query produced them:

- Flat records carry ``collection`` / ``creator`` / ``collection_id`` directly,
  optionally with a nested ``current_token_data`` block.
- Indexer ownership records carry ``token_data_id`` as a compound string
  ``creator::collection::name``.
- Token store table items carry ``token_data_id`` as a structured object
  ``{creator, collection, name}``, usually nested under ``id``.

``parse_token_record`` tags a raw payload with one of those variants and
``normalize_token_record`` reduces any variant to a ``CanonicalToken``. Every
field access tolerates a missing key or a wrong type at any depth; a record
that is not a mapping at all parses to an empty ``FlatRecord``.
"""

from dataclasses import dataclass, field
from typing import Any, Union

ADDRESS_PREFIX = "0x"
TOKEN_ID_SEPARATOR = "::"


def normalize_identifier(value: Any) -> str | None:
    """
    Normalize an address or collection identifier for comparison.

    Lowercases, strips surrounding whitespace and prepends ``0x`` when
    missing. Non-strings and blank strings normalize to None.
    """
    if not isinstance(value, str):
        return None
    value = value.strip().lower()
    if not value:
        return None
    if not value.startswith(ADDRESS_PREFIX):
        value = f"{ADDRESS_PREFIX}{value}"
    return value


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _normalized(*values: Any) -> tuple[str, ...]:
    seen: list[str] = []
    for value in values:
        normalized = normalize_identifier(value)
        if normalized and normalized not in seen:
            seen.append(normalized)
    return tuple(seen)


# =============================================================================
# Variants
# =============================================================================


@dataclass(frozen=True)
class StructuredTokenId:
    """Structured token data id as stored in token store tables."""

    creator: str | None = None
    collection: str | None = None
    name: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "StructuredTokenId | None":
        data = _mapping(payload)
        if not data:
            return None
        token_id = cls(
            creator=_text(data.get("creator")),
            collection=_text(data.get("collection")),
            name=_text(data.get("name")),
        )
        if token_id.creator is None and token_id.collection is None:
            return None
        return token_id


@dataclass(frozen=True)
class TokenAttributes:
    """Fields that may accompany any record variant."""

    collection: str | None = None
    creator: str | None = None
    collection_id: str | None = None
    # current_token_data block
    data_collection_id: str | None = None
    data_token_id: StructuredTokenId | None = None
    # current_token_data.current_collection block
    current_collection_id: str | None = None
    current_collection_name: str | None = None
    current_creator_address: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenAttributes":
        token_data = _mapping(payload.get("current_token_data"))
        current_collection = _mapping(token_data.get("current_collection"))
        return cls(
            collection=_text(payload.get("collection")),
            creator=_text(payload.get("creator")),
            collection_id=_text(payload.get("collection_id")),
            data_collection_id=_text(token_data.get("collection_id")),
            data_token_id=StructuredTokenId.from_payload(token_data.get("token_data_id")),
            current_collection_id=_text(current_collection.get("collection_id")),
            current_collection_name=_text(current_collection.get("collection_name")),
            current_creator_address=_text(current_collection.get("creator_address")),
        )


@dataclass(frozen=True)
class CanonicalToken:
    """
    Normalized ownership evidence grouped by how trustworthy it is.

    Every value is already normalized with ``normalize_identifier`` except
    ``raw_ids``, which holds lowercased compound id strings for substring
    checks.
    """

    collection_ids: tuple[str, ...] = ()
    flat_values: tuple[str, ...] = ()
    structured_values: tuple[str, ...] = ()
    segment_values: tuple[str, ...] = ()
    raw_ids: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.collection_ids
            or self.flat_values
            or self.structured_values
            or self.segment_values
            or self.raw_ids
        )


def _canonical_from_attributes(
    attributes: TokenAttributes,
    structured: StructuredTokenId | None = None,
    segments: tuple[str, ...] = (),
    raw_id: str | None = None,
) -> CanonicalToken:
    structured_ids = [t for t in (structured, attributes.data_token_id) if t is not None]
    return CanonicalToken(
        collection_ids=_normalized(
            attributes.collection_id,
            attributes.data_collection_id,
            attributes.current_collection_id,
        ),
        flat_values=_normalized(
            attributes.collection,
            attributes.creator,
            attributes.current_collection_name,
            attributes.current_creator_address,
        ),
        structured_values=_normalized(
            *(value for t in structured_ids for value in (t.collection, t.creator))
        ),
        segment_values=_normalized(*segments),
        raw_ids=(raw_id.lower(),) if raw_id else (),
    )


@dataclass(frozen=True)
class FlatRecord:
    """Record without a token data id."""

    attributes: TokenAttributes = field(default_factory=TokenAttributes)

    def canonical(self) -> CanonicalToken:
        return _canonical_from_attributes(self.attributes)


@dataclass(frozen=True)
class StringIdRecord:
    """Record whose token data id is a ``creator::collection::name`` string."""

    token_data_id: str
    attributes: TokenAttributes = field(default_factory=TokenAttributes)

    def canonical(self) -> CanonicalToken:
        # Segment 0 is a candidate creator, segment 1 a candidate collection name
        parts = self.token_data_id.split(TOKEN_ID_SEPARATOR)
        return _canonical_from_attributes(
            self.attributes,
            segments=tuple(parts[:2]),
            raw_id=self.token_data_id,
        )


@dataclass(frozen=True)
class NestedRecord:
    """Record whose token data id is a structured object."""

    token_data_id: StructuredTokenId
    attributes: TokenAttributes = field(default_factory=TokenAttributes)

    def canonical(self) -> CanonicalToken:
        return _canonical_from_attributes(self.attributes, structured=self.token_data_id)


TokenRecord = Union[FlatRecord, StringIdRecord, NestedRecord]


# =============================================================================
# Parsing
# =============================================================================


def parse_token_record(raw: Any) -> TokenRecord:
    """Tag a raw chain payload with its record variant."""
    if isinstance(raw, (FlatRecord, StringIdRecord, NestedRecord)):
        return raw

    payload = _mapping(raw)
    attributes = TokenAttributes.from_payload(payload)

    token_data_id = payload.get("token_data_id")
    if token_data_id is None:
        # Token store items nest the id as {"id": {"token_data_id": {...}}}
        token_data_id = _mapping(payload.get("id")).get("token_data_id")

    string_id = _text(token_data_id)
    if string_id is not None:
        return StringIdRecord(token_data_id=string_id, attributes=attributes)

    structured = StructuredTokenId.from_payload(token_data_id)
    if structured is not None:
        return NestedRecord(token_data_id=structured, attributes=attributes)

    return FlatRecord(attributes=attributes)


def normalize_token_record(raw: Any) -> CanonicalToken:
    """Reduce a raw payload or parsed record to its canonical form."""
    return parse_token_record(raw).canonical()
