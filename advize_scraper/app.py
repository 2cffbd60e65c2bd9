"""
HTTP routes: Instagram scraping and the CDN image proxy.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from .client import InstagramClient
from .config import RESULTS_TYPE_DETAILS, ScraperConfig
from .errors import DomainNotAllowedError, InputError
from .models import ScrapeRequest, ScrapeResult
from .parsers import UrlParser
from .proxy import ImageProxy

logger = logging.getLogger(__name__)

SCRAPE_TYPES = ("profile", "post")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        ScrapeResult.failure(message).to_json_dict(),
        status_code=status_code,
    )


async def _dispatch(scraper: InstagramClient, req: ScrapeRequest) -> JSONResponse:
    """Validate one scrape request and run it; the result's own success flag is echoed."""
    url = (req.url or "").strip()
    if not url:
        return _error("URL or username is required", 400)

    scrape_type = req.type or "profile"
    if scrape_type not in SCRAPE_TYPES:
        return _error(f"Unknown type: {scrape_type}", 400)

    try:
        if scrape_type == "post":
            post_url = UrlParser.extract_post_url(url)
            if not post_url:
                return _error("Invalid Instagram post URL", 400)
            result = await scraper.fetch_post(post_url)
        else:
            username = UrlParser.extract_username(url)
            if not username:
                return _error("Invalid Instagram URL or username", 400)
            result = await scraper.fetch_profile(username, req.results_type or RESULTS_TYPE_DETAILS)
    except InputError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception(f"Instagram scrape failed unexpectedly: {e}")
        return _error(str(e) or "Internal server error", 500)

    return JSONResponse(result.to_json_dict(), status_code=200)


def create_app(
    config: Optional[ScraperConfig] = None,
    scraper: Optional[InstagramClient] = None,
    image_proxy: Optional[ImageProxy] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (read from the environment if omitted)
        scraper: Scrape orchestrator; created from config if omitted
        image_proxy: Image proxy; created from config if omitted
    """
    config = config or ScraperConfig.from_env()
    injected_scraper = scraper
    injected_proxy = image_proxy

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        app.state.scraper = injected_scraper
        app.state.image_proxy = injected_proxy
        if app.state.scraper is None:
            app.state.scraper = InstagramClient(config)
            owned.append(app.state.scraper)
        if app.state.image_proxy is None:
            app.state.image_proxy = ImageProxy(config)
            owned.append(app.state.image_proxy)
        try:
            yield
        finally:
            for component in owned:
                await component.close()

    app = FastAPI(
        title="Advize Instagram API",
        description="Scrape Instagram profiles/posts and proxy CDN images",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.post("/api/instagram")
    async def scrape_instagram(request: Request):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error("Request body must be JSON", 400)

        try:
            req = ScrapeRequest.model_validate(body)
        except ValidationError:
            return _error("Request body must be an object with a string url", 400)

        return await _dispatch(request.app.state.scraper, req)

    @app.get("/api/instagram")
    async def scrape_instagram_query(request: Request):
        params = request.query_params
        req = ScrapeRequest(
            url=params.get("url"),
            type=params.get("type"),
            results_type=params.get("resultsType"),
        )
        return await _dispatch(request.app.state.scraper, req)

    @app.get("/api/image-proxy")
    async def proxy_image(request: Request):
        proxy: ImageProxy = request.app.state.image_proxy
        url = request.query_params.get("url")

        try:
            image = await proxy.fetch(url)
        except InputError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except DomainNotAllowedError as e:
            logger.warning(f"Rejected image proxy request: {e}")
            return JSONResponse({"error": "Domain not allowed"}, status_code=403)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Image proxy error: {e}")
            return JSONResponse({"error": "Failed to proxy image"}, status_code=500)
        except Exception:
            logger.exception("Unexpected image proxy error")
            return JSONResponse({"error": "Failed to proxy image"}, status_code=500)

        if not image.ok:
            return JSONResponse(
                {"error": f"Failed to fetch image: {image.status_code}"},
                status_code=image.status_code,
            )

        return Response(
            content=image.content,
            media_type=image.content_type,
            headers=image.headers,
        )

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app
