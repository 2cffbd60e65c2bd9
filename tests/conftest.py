import asyncio
from types import SimpleNamespace

import pytest
from apify_client._errors import ApifyApiError

from advize_scraper.config import ScraperConfig


class FakeApiError(ApifyApiError):
    """An actor API error carrying only an HTTP status."""

    def __init__(self, status_code):
        Exception.__init__(self, f"API responded with status {status_code}")
        self.status_code = status_code
        self.type = None
        self.attempt = 1
        self.http_method = "POST"


class FakeApify:
    """Stands in for the actor API client: records calls, returns canned runs.

    ``error`` is raised from the actor call, or from the dataset read when
    ``error_on="dataset"``.
    """

    def __init__(self, items=None, status="SUCCEEDED", delay=0.0, error=None, error_on="call"):
        self.items = list(items or [])
        self.run = {"id": "run-1", "status": status, "defaultDatasetId": "ds-1"}
        self.delay = delay
        self.error = error
        self.error_on = error_on
        self.calls = []

    def actor(self, actor_id):
        fake = self

        class _Actor:
            async def call(self, run_input=None, timeout_secs=None, wait_secs=None):
                fake.calls.append({"actor_id": actor_id, "run_input": run_input})
                await asyncio.sleep(fake.delay)
                if fake.error is not None and fake.error_on == "call":
                    raise fake.error
                return fake.run

        return _Actor()

    def dataset(self, dataset_id):
        fake = self

        class _Dataset:
            async def list_items(self, limit=None):
                if fake.error is not None and fake.error_on == "dataset":
                    raise fake.error
                return SimpleNamespace(items=fake.items[:limit] if limit else fake.items)

        return _Dataset()


@pytest.fixture
def config():
    return ScraperConfig(apify_token="test-token", ua_profile="chrome_windows")


@pytest.fixture
def fake_apify():
    return FakeApify


@pytest.fixture
def api_error():
    return FakeApiError
