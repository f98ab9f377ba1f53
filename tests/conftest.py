"""
Shared test doubles.

============================================================
CONTENTS
============================================================
- RecordingSleep: async sleep stand-in that records delays
- FakeResponse / FakeSession: minimal aiohttp session doubles
- FakeMarketplace: in-memory listing/events/owners/image API
- Corpus helpers for the normalizer tests

============================================================
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import pytest

from collection_harvest.config import HarvestConfig
from collection_harvest.retry import RetryPolicy


API_URL = "https://api.test/v1"
IMAGE_HOST = "lh3.googleusercontent.com"
CONTRACT = "0xabc0000000000000000000000000000000000001"


# ============================================================
# ASYNC DOUBLES
# ============================================================

class RecordingSleep:
    """Async callable that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeResponse:
    """Just enough of aiohttp.ClientResponse for the clients under test."""

    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        body: bytes = b"",
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status = status
        self._json = json_data
        self._body = body
        self.headers = headers or {}

    async def json(self) -> Any:
        return self._json

    async def read(self) -> bytes:
        return self._body

    async def text(self) -> str:
        if self._json is not None:
            return json.dumps(self._json)
        return self._body.decode("utf-8", errors="replace")

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


class FakeSession:
    """
    Routes every request through ``handler(method, url, params)``.

    ``handler`` returns a FakeResponse or raises (e.g. aiohttp.ClientError).
    """

    def __init__(self, handler: Callable[[str, str, dict], FakeResponse]) -> None:
        self._handler = handler
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, params=None, headers=None):
        self.calls.append({
            "method": method,
            "url": url,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
        })
        return self._handler(method, url, dict(params or {}))

    async def close(self) -> None:
        self.closed = True


def scripted_session(*responses: FakeResponse) -> FakeSession:
    """Session that returns ``responses`` in order, one per request."""
    queue = list(responses)

    def handler(method, url, params):
        return queue.pop(0)

    return FakeSession(handler)


# ============================================================
# FAKE MARKETPLACE
# ============================================================

def raw_asset(token_id: str, name: Optional[str] = None, slug: str = "hunnys") -> dict:
    return {
        "token_id": token_id,
        "name": name or f"Hunny #{token_id}",
        "description": f"Description of {token_id}",
        "image_url": f"https://{IMAGE_HOST}/img{token_id}?w=500",
        "image_original_url": None,
        "traits": [{"trait_type": "Fur", "value": "Gold"}],
        "asset_contract": {"address": CONTRACT},
        "collection": {"slug": slug},
    }


def raw_event(event_type: str, created_date: str) -> dict:
    return {
        "event_type": event_type,
        "created_date": created_date,
        "asset": {"token_id": "ignored"},
        "from_account": {"address": "0xfrom"},
        "to_account": {"address": "0xto"},
    }


def raw_owner(address: str, created_date: str) -> dict:
    return {
        "owner": {"address": address, "user": {"username": None}},
        "quantity": "1",
        "created_date": created_date,
    }


class FakeMarketplace:
    """
    In-memory marketplace. Cursors are ``"p<index>"``.

    Args:
        assets: Raw listing entries
        asset_page_size: Listing page size
        events: token_id -> list of event pages
        owners: token_id -> list of owner pages
        failing_images: token ids whose image always returns 500
    """

    def __init__(
        self,
        assets: list[dict],
        asset_page_size: int = 2,
        events: Optional[dict[str, list[list[dict]]]] = None,
        owners: Optional[dict[str, list[list[dict]]]] = None,
        failing_images: Optional[set[str]] = None,
    ) -> None:
        self.assets = assets
        self.asset_page_size = asset_page_size
        self.events = events or {}
        self.owners = owners or {}
        self.failing_images = failing_images or set()
        self.image_requests: list[str] = []
        self.session = FakeSession(self.handle)

    @staticmethod
    def _index(params: dict) -> int:
        cursor = params.get("cursor")
        return int(cursor[1:]) if cursor else 0

    @staticmethod
    def _paged(pages: list[list[dict]], index: int, key: str) -> FakeResponse:
        pages = pages or [[]]
        payload = {key: pages[index]}
        if index + 1 < len(pages):
            payload["next"] = f"p{index + 1}"
        return FakeResponse(json_data=payload)

    def handle(self, method: str, url: str, params: dict) -> FakeResponse:
        parts = urlsplit(url)

        if parts.netloc == IMAGE_HOST:
            token_id = parts.path[len("/img"):].split("=")[0]
            self.image_requests.append(token_id)
            if token_id in self.failing_images:
                return FakeResponse(status=500, body=b"boom")
            return FakeResponse(
                body=f"png-{token_id}".encode(),
                headers={"Content-Type": "image/png"},
            )

        if url == f"{API_URL}/assets":
            index = self._index(params)
            size = self.asset_page_size
            pages = [
                self.assets[i:i + size]
                for i in range(0, len(self.assets), size)
            ]
            return self._paged(pages, index, "assets")

        if url == f"{API_URL}/events":
            pages = self.events.get(params["token_id"], [[]])
            return self._paged(pages, self._index(params), "asset_events")

        if url.endswith("/owners"):
            token_id = parts.path.split("/")[-2]
            pages = self.owners.get(token_id, [[]])
            return self._paged(pages, self._index(params), "owners")

        return FakeResponse(status=404, body=b"not found")


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def sleep_recorder():
    """Records every backoff/rate-limit delay."""
    return RecordingSleep()


@pytest.fixture
def fast_policy(sleep_recorder):
    """Three attempts, no real waiting."""
    return RetryPolicy(
        max_attempts=3,
        initial_delay_seconds=0.25,
        sleep=sleep_recorder,
    )


@pytest.fixture
def harvest_config(tmp_path):
    """Harvest configuration pointed at the fake API."""
    return HarvestConfig(
        api_key="test-key",
        api_url=API_URL,
        output_root=tmp_path / "harvest",
    )


# ============================================================
# CORPUS HELPERS
# ============================================================

def write_harvested(
    directory: Path,
    token_id: str,
    name: str,
    events: Optional[list[dict]] = None,
    owners: Optional[list[dict]] = None,
    image_ext: str = "png",
    extra: Optional[dict] = None,
) -> Path:
    """Write one harvested record plus its media file."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{token_id}.{image_ext}").write_bytes(f"image-{token_id}".encode())
    record = {
        "name": name,
        "description": f"About {name}",
        "image": f"./{token_id}.{image_ext}",
        "attributes": [{"trait_type": "Fur", "value": "Gold"}],
        "owners": owners or [],
        "events": events or [],
    }
    record.update(extra or {})
    path = directory / f"{token_id}.json"
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    return path


def created_event(created_date: str) -> dict:
    return {"event_type": "created", "created_date": created_date}
