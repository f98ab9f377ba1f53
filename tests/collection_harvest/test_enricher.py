"""
Tests for AssetEnricher.

============================================================
TEST SCENARIOS
============================================================
1. All three sub-fetches succeed -> JSON + media committed
2. Paginated events are concatenated in page order
3. Any sub-fetch fails -> nothing written, error raised

============================================================
"""

import json

import pytest

from conftest import FakeMarketplace, raw_asset, raw_event, raw_owner

from collection_harvest.client import MarketplaceClient
from collection_harvest.enricher import AssetEnricher
from collection_harvest.exceptions import RetryExhausted
from collection_harvest.models import Asset
from collection_harvest.storage import HarvestStorage


def build_enricher(market, harvest_config, fast_policy, sleep_recorder):
    client = MarketplaceClient(harvest_config, session=market.session, sleep=sleep_recorder)
    storage = HarvestStorage(harvest_config.output_root)
    return AssetEnricher(client, storage, fast_policy), storage


class TestAssetEnricher:
    """Tests for the per-asset join."""

    @pytest.mark.asyncio
    async def test_commits_joined_record(self, harvest_config, fast_policy, sleep_recorder):
        market = FakeMarketplace(
            [],
            events={"1": [
                [raw_event("created", "2021-01-01T00:00:00")],
                [raw_event("successful", "2021-03-01T00:00:00")],
            ]},
            owners={"1": [[raw_owner("0xa", "2021-01-02T00:00:00")]]},
        )
        enricher, storage = build_enricher(market, harvest_config, fast_policy, sleep_recorder)
        asset = Asset.from_api(raw_asset("1"), "hunnys")

        record = await enricher.enrich(asset)

        assert record.image == "./1.png"
        assert [e.event_type.value for e in record.events] == ["created", "sold"]
        assert [o.owner_address for o in record.owners] == ["0xa"]

        json_path = storage.record_path("hunnys", "1")
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["name"] == "Hunny #1"
        assert data["image"] == "./1.png"
        assert data["attributes"] == [{"trait_type": "Fur", "value": "Gold"}]
        assert len(data["events"]) == 2
        assert "asset" not in data["events"][0]
        assert storage.media_path("hunnys", "1", "png").read_bytes() == b"png-1"

    @pytest.mark.asyncio
    async def test_failed_image_writes_nothing(self, harvest_config, fast_policy, sleep_recorder):
        market = FakeMarketplace([], failing_images={"2"})
        enricher, storage = build_enricher(market, harvest_config, fast_policy, sleep_recorder)
        asset = Asset.from_api(raw_asset("2"), "hunnys")

        with pytest.raises(RetryExhausted):
            await enricher.enrich(asset)

        assert market.image_requests == ["2", "2", "2"]
        assert not storage.has_record("hunnys", "2")
        collection_dir = storage.collection_dir("hunnys")
        assert not collection_dir.exists() or list(collection_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_sub_fetches_all_settle(self, harvest_config, fast_policy, sleep_recorder):
        """Events and owners are still fetched when the image fails."""
        market = FakeMarketplace(
            [],
            owners={"2": [[raw_owner("0xa", None)]]},
            failing_images={"2"},
        )
        enricher, _ = build_enricher(market, harvest_config, fast_policy, sleep_recorder)

        with pytest.raises(RetryExhausted):
            await enricher.enrich(Asset.from_api(raw_asset("2"), "hunnys"))

        urls = [c["url"] for c in market.session.calls]
        assert any(u.endswith("/events") for u in urls)
        assert any(u.endswith("/owners") for u in urls)
