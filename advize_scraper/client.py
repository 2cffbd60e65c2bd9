"""
Instagram scrape orchestrator backed by the managed scraping actor.

One request triggers at most one actor run; concurrent identical requests
share that run.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from apify_client import ApifyClientAsync
# apify-client 1.x only exposes its API error from the private module (pinned <2)
from apify_client._errors import ApifyApiError

from .analytics import build_post_analytics, build_profile_analytics
from .config import (
    ScraperConfig,
    RESULTS_TYPE_DETAILS,
    RESULTS_TYPE_POSTS,
    RESULTS_TYPES,
)
from .errors import (
    EmptyResultError,
    InputError,
    ScrapeError,
    UpstreamAuthError,
    UpstreamRunError,
    UpstreamTimeoutError,
)
from .models import InstagramAnalytics, ScrapeResult
from .parsers import PostParser, ProfileParser, UrlParser

logger = logging.getLogger(__name__)

RUN_SUCCEEDED = "SUCCEEDED"
RUN_FAILED_STATUSES = ("FAILED", "ABORTED", "ABORTING")
RUN_TIMEOUT_STATUSES = ("TIMED-OUT", "TIMING-OUT")


class InstagramClient:
    """
    Scrapes Instagram profiles and posts through the scraping actor.

    This client:
    - Runs the actor once per request (no retries)
    - Blocks until the run finishes, bounded by the configured wait budget
    - Maps each failure to a distinct error (auth, run failure, timeout, empty)
    - De-duplicates concurrent requests for the same handle or post
    """

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        apify_client: Optional[Any] = None,
    ):
        """
        Initialize the Instagram client.

        Args:
            config: Scraper configuration (uses defaults if not provided)
            apify_client: Pre-built actor API client, mostly for tests
        """
        self.config = config or ScraperConfig()
        self._client = apify_client
        self._owns_client = False
        self._inflight: dict[tuple[str, ...], asyncio.Future] = {}

    async def __aenter__(self):
        """Async context manager entry. The API client is created lazily."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self):
        """Ensure the actor API client is created."""
        if self._client is None:
            if not self.config.apify_token:
                raise UpstreamAuthError("APIFY_API_TOKEN is not set")
            self._client = ApifyClientAsync(
                token=self.config.apify_token,
                max_retries=0,  # exactly one attempt per call
                timeout_secs=self.config.wait_secs,
            )
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the API client if we created it and drop in-flight bookkeeping."""
        if self._client is not None and self._owns_client:
            await self._client.http_client.httpx_async_client.aclose()
            self._client = None
            self._owns_client = False
        self._inflight.clear()

    async def _single_flight(
        self,
        key: tuple[str, ...],
        factory: Callable[[], Awaitable[InstagramAnalytics]],
    ) -> InstagramAnalytics:
        """Run ``factory`` once per key; concurrent callers await the same run."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task

            def _forget(done: asyncio.Future):
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        else:
            logger.info(f"Joining in-flight scrape for {key}")

        # shield: one caller going away must not cancel the shared run
        return await asyncio.shield(task)

    async def _run_actor(self, run_input: dict) -> list[dict]:
        """
        Run the actor once and return its dataset items.

        Raises:
            UpstreamAuthError: Token missing or rejected
            UpstreamTimeoutError: Run did not finish in time
            UpstreamRunError: Run failed, was aborted or the API errored
        """
        client = self._ensure_client()

        logger.debug(f"Calling actor {self.config.actor_id} with {run_input}")

        try:
            run = await client.actor(self.config.actor_id).call(
                run_input=run_input,
                timeout_secs=self.config.run_timeout,
                wait_secs=self.config.wait_secs,
            )
        except ApifyApiError as e:
            if getattr(e, "status_code", None) in (401, 403):
                raise UpstreamAuthError(f"Scraping API rejected credentials: {e}") from e
            raise UpstreamRunError(f"Scraping API error: {e}") from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Scraping API timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamRunError(f"Scraping API unreachable: {e}") from e

        if not run:
            raise UpstreamRunError("Scraping actor returned no run")

        status = run.get("status")
        if status in RUN_TIMEOUT_STATUSES:
            raise UpstreamTimeoutError(f"Scraping run timed out ({status})")
        if status in RUN_FAILED_STATUSES:
            raise UpstreamRunError(f"Scraping run failed ({status})", status=status)
        if status != RUN_SUCCEEDED:
            # Still READY/RUNNING after the wait budget ran out
            raise UpstreamTimeoutError(
                f"Scraping run did not finish within {self.config.wait_secs}s ({status})"
            )

        dataset_id = run.get("defaultDatasetId")
        try:
            page = await client.dataset(dataset_id).list_items(limit=1)
        except ApifyApiError as e:
            raise UpstreamRunError(f"Could not read scraping results: {e}") from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Timed out reading scraping results: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamRunError(f"Could not read scraping results: {e}") from e

        items = list(page.items or [])
        logger.debug(f"Run {run.get('id')} produced {len(items)} item(s)")
        return items

    async def scrape_profile(
        self,
        username: str,
        results_type: str = RESULTS_TYPE_DETAILS,
    ) -> InstagramAnalytics:
        """
        Scrape profile data for a handle.

        Args:
            username: Normalized Instagram handle
            results_type: ``details`` (profile + latest posts) or ``posts``

        Returns:
            InstagramAnalytics for the profile

        Raises:
            InputError, UpstreamError subclasses, EmptyResultError
        """
        if results_type not in RESULTS_TYPES:
            raise InputError(f"Unknown results type: {results_type}")

        async def run() -> InstagramAnalytics:
            logger.info(f"Scraping profile @{username} ({results_type})")
            items = await self._run_actor({
                "directUrls": [UrlParser.profile_url(username)],
                "resultsLimit": 1,
                "resultsType": results_type,
                "checkOldPosts": False,
            })
            if not items:
                raise EmptyResultError("No data found for this Instagram profile")

            item = items[0]
            profile = ProfileParser.parse_item(item, username)

            if results_type == RESULTS_TYPE_POSTS:
                posts = PostParser.parse_items([item], profile.username)
            else:
                posts = PostParser.parse_items(item.get("latestPosts") or [], profile.username)

            logger.info(f"Profile scraped: @{profile.username} ({profile.followers_count} followers)")
            return build_profile_analytics(profile, posts, self.config.recent_posts_limit)

        return await self._single_flight(("profile", results_type, username), run)

    async def scrape_post(self, post_url: str) -> InstagramAnalytics:
        """
        Scrape a single post.

        Args:
            post_url: Canonical Instagram post URL

        Returns:
            InstagramAnalytics holding the post and its owner
        """

        async def run() -> InstagramAnalytics:
            logger.info(f"Scraping post {post_url}")
            items = await self._run_actor({
                "directUrls": [post_url],
                "resultsLimit": 1,
            })
            if not items:
                raise EmptyResultError("No data found for this Instagram post")

            item = items[0]
            post = PostParser.parse_item(item, post_url)
            owner = ProfileParser.parse_item(item, post.owner_username)
            return build_post_analytics(post, owner)

        return await self._single_flight(("post", post_url), run)

    async def fetch_profile(
        self,
        username: str,
        results_type: str = RESULTS_TYPE_DETAILS,
    ) -> ScrapeResult:
        """Scrape a profile and wrap the outcome in a ScrapeResult."""
        return await self._as_result(lambda: self.scrape_profile(username, results_type))

    async def fetch_post(self, post_url: str) -> ScrapeResult:
        """Scrape a post and wrap the outcome in a ScrapeResult."""
        return await self._as_result(lambda: self.scrape_post(post_url))

    @staticmethod
    async def _as_result(
        scrape: Callable[[], Awaitable[InstagramAnalytics]],
    ) -> ScrapeResult:
        """
        Convert known scrape failures into a failed ScrapeResult.

        Input errors and unexpected exceptions propagate to the caller.
        """
        try:
            data = await scrape()
        except InputError:
            raise
        except ScrapeError as e:
            logger.warning(f"Scrape failed ({e.reason}): {e}")
            return ScrapeResult.failure(str(e), e.reason)
        return ScrapeResult.ok(data)
