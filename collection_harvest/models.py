"""
Collection Harvest Data Models.

Typed views over the marketplace payloads plus the record written to
harvest storage. Everything read from the marketplace is immutable once
parsed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EventType(Enum):
    """Provenance event kinds, normalized from the marketplace vocabulary."""
    CREATED = "created"
    SOLD = "sold"
    CANCELLED = "cancelled"
    BID_ENTERED = "bid_entered"
    BID_WITHDRAWN = "bid_withdrawn"
    TRANSFERRED = "transferred"
    OFFER_ENTERED = "offer_entered"
    APPROVED = "approved"

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "EventType":
        """Map a raw marketplace ``event_type`` onto the normalized enum."""
        aliases = {
            "successful": cls.SOLD,
            "transfer": cls.TRANSFERRED,
            "approve": cls.APPROVED,
        }
        if raw in aliases:
            return aliases[raw]
        return cls(raw)


class AssetState(Enum):
    """Per-asset harvest lifecycle."""
    DISCOVERED = "discovered"
    ENRICHING = "enriching"
    HARVESTED = "harvested"
    FAILED = "failed"


@dataclass(frozen=True)
class Trait:
    """A single ``{trait_type, value}`` attribute."""
    trait_type: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"trait_type": self.trait_type, "value": self.value}


@dataclass(frozen=True)
class Asset:
    """
    An asset discovered from the collection listing.

    Identity is (contract_address, token_id).
    """
    contract_address: str
    token_id: str
    name: str
    description: str
    image_url: str
    collection_slug: str
    image_original_url: Optional[str] = None
    traits: tuple[Trait, ...] = ()

    @property
    def preferred_image_url(self) -> str:
        """Original-resolution URL when the marketplace has one."""
        return self.image_original_url or self.image_url

    @classmethod
    def from_api(cls, data: dict[str, Any], collection_slug: str = "") -> "Asset":
        """Create from a raw listing entry."""
        contract = data.get("asset_contract") or {}
        collection = data.get("collection") or {}
        return cls(
            contract_address=contract.get("address", ""),
            token_id=str(data["token_id"]),
            name=data.get("name") or "",
            description=data.get("description") or "",
            image_url=data.get("image_url") or "",
            image_original_url=data.get("image_original_url") or None,
            collection_slug=collection.get("slug") or collection_slug,
            traits=tuple(
                Trait(trait_type=t.get("trait_type", ""), value=t.get("value"))
                for t in data.get("traits") or []
            ),
        )


@dataclass(frozen=True)
class OwnershipRecord:
    """One historical owner of an asset."""
    owner_address: str
    quantity: str
    created_date: Optional[str]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "OwnershipRecord":
        owner = data.get("owner") or {}
        return cls(
            owner_address=owner.get("address", ""),
            quantity=str(data.get("quantity", "1")),
            created_date=data.get("created_date"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner_address": self.owner_address,
            "quantity": self.quantity,
            "created_date": self.created_date,
        }


@dataclass(frozen=True)
class ProvenanceEvent:
    """
    A trade/transfer/listing event in an asset's history.

    The raw payload's ``asset`` back-reference is not carried over.
    """
    event_type: EventType
    created_date: Optional[str]
    counterparty_accounts: dict[str, str] = field(default_factory=dict)
    price_info: Optional[dict[str, Any]] = None

    COUNTERPARTY_FIELDS = ("from_account", "to_account", "seller", "winner_account")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ProvenanceEvent":
        counterparties = {}
        for key in cls.COUNTERPARTY_FIELDS:
            account = data.get(key)
            if account and account.get("address"):
                counterparties[key] = account["address"]

        price_info = None
        if data.get("total_price") is not None:
            token = data.get("payment_token") or {}
            price_info = {
                "total_price": str(data["total_price"]),
                "quantity": str(data.get("quantity") or "1"),
                "symbol": token.get("symbol"),
                "decimals": token.get("decimals"),
                "eth_price": token.get("eth_price"),
                "usd_price": token.get("usd_price"),
            }

        return cls(
            event_type=EventType.from_raw(data.get("event_type")),
            created_date=data.get("created_date"),
            counterparty_accounts=counterparties,
            price_info=price_info,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "event_type": self.event_type.value,
            "created_date": self.created_date,
        }
        if self.counterparty_accounts:
            data["counterparty_accounts"] = dict(self.counterparty_accounts)
        if self.price_info:
            data["price_info"] = dict(self.price_info)
        return data


@dataclass(frozen=True)
class ImagePayload:
    """Downloaded image bytes plus the extension to store them under."""
    content: bytes
    extension: str
    source_url: str


@dataclass(frozen=True)
class HarvestedRecord:
    """
    The JSON record committed to harvest storage, one per token id.
    """
    token_id: str
    name: str
    description: str
    image: str
    attributes: tuple[Trait, ...]
    owners: tuple[OwnershipRecord, ...]
    events: tuple[ProvenanceEvent, ...]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk layout."""
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "attributes": [t.to_dict() for t in self.attributes],
            "owners": [o.to_dict() for o in self.owners],
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class AssetOutcome:
    """Tracks one asset through the harvest state machine."""
    asset: Asset
    state: AssetState = AssetState.DISCOVERED
    error: Optional[BaseException] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


@dataclass
class HarvestReport:
    """Summary of a harvest run."""
    collection_slug: str
    pages_consumed: int = 0
    outcomes: list[AssetOutcome] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def harvested(self) -> list[AssetOutcome]:
        return [o for o in self.outcomes if o.state == AssetState.HARVESTED]

    @property
    def failed(self) -> list[AssetOutcome]:
        return [o for o in self.outcomes if o.state == AssetState.FAILED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection_slug": self.collection_slug,
            "pages_consumed": self.pages_consumed,
            "discovered": len(self.outcomes),
            "harvested": len(self.harvested),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
        }
