import httpx
import pytest
from fastapi.testclient import TestClient

from advize_scraper.app import create_app
from advize_scraper.client import InstagramClient
from advize_scraper.config import ScraperConfig
from advize_scraper.proxy import ImageProxy

from samples import DETAILS_ITEM, POST_SCRAPE_ITEM

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


class ExplodingClient(InstagramClient):
    async def fetch_profile(self, username, results_type="details"):
        raise RuntimeError("boom")


def _image_upstream(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/redirect.jpg":
        return httpx.Response(302, headers={"Location": "http://169.254.169.254/latest/meta-data"})
    if request.url.path == "/missing.jpg":
        return httpx.Response(404, text="not found")
    if request.url.path == "/broken.jpg":
        raise httpx.ConnectError("connection refused", request=request)
    assert request.headers["Referer"] == "https://www.instagram.com/"
    assert "Chrome" in request.headers["User-Agent"]
    return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})


@pytest.fixture
def make_client(config, fake_apify):
    def _make(items=None, scraper=None):
        apify = fake_apify(items or [])
        scraper = scraper or InstagramClient(config, apify_client=apify)
        proxy = ImageProxy(
            config,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(_image_upstream)),
        )
        app = create_app(config, scraper=scraper, image_proxy=proxy)
        return TestClient(app), apify

    return _make


def test_post_with_empty_body_is_400(make_client):
    client, _ = make_client()
    with client:
        response = client.post("/api/instagram", json={})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_post_with_invalid_json_is_400(make_client):
    client, _ = make_client()
    with client:
        response = client.post(
            "/api/instagram",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_non_instagram_url_is_400(make_client):
    client, apify = make_client([DETAILS_ITEM])
    with client:
        response = client.post("/api/instagram", json={"url": "https://evil.example.com/natgeo"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid Instagram URL or username"}
    assert apify.calls == []


def test_unknown_type_is_400(make_client):
    client, _ = make_client([DETAILS_ITEM])
    with client:
        response = client.post("/api/instagram", json={"url": "natgeo", "type": "story"})
    assert response.status_code == 400


def test_profile_scrape_defaults_to_profile_type(make_client):
    client, apify = make_client([DETAILS_ITEM])
    with client:
        response = client.post("/api/instagram", json={"url": "https://www.instagram.com/NatGeo/?hl=en"})
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["profile"]["username"] == "natgeo"
    assert body["data"]["profile"]["followersCount"] == 1000
    assert apify.calls[0]["run_input"]["directUrls"] == ["https://www.instagram.com/natgeo/"]


def test_get_post_scrape(make_client):
    client, apify = make_client([POST_SCRAPE_ITEM])
    with client:
        response = client.get(
            "/api/instagram",
            params={"url": "https://www.instagram.com/p/DDD/?img_index=1", "type": "post"},
        )
    body = response.json()
    assert response.status_code == 200
    assert body["data"]["recentPosts"][0]["shortCode"] == "DDD"
    assert apify.calls[0]["run_input"]["directUrls"] == ["https://www.instagram.com/p/DDD/"]


def test_get_invalid_post_url_is_400(make_client):
    client, _ = make_client([POST_SCRAPE_ITEM])
    with client:
        response = client.get("/api/instagram", params={"url": "natgeo", "type": "post"})
    assert response.status_code == 400


def test_get_missing_url_is_400(make_client):
    client, _ = make_client()
    with client:
        response = client.get("/api/instagram")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_upstream_failure_is_200_with_success_false(make_client):
    client, _ = make_client([])
    with client:
        response = client.get("/api/instagram", params={"url": "ghost"})
    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "No data found for this Instagram profile",
        "reason": "not_found",
    }


def test_unexpected_error_is_500(make_client, config):
    client, _ = make_client(scraper=ExplodingClient(config))
    with client:
        response = client.post("/api/instagram", json={"url": "natgeo"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "boom"}


def test_image_proxy_rejects_foreign_domain(make_client):
    client, _ = make_client()
    with client:
        response = client.get("/api/image-proxy", params={"url": "https://evil.example.com/x.jpg"})
    assert response.status_code == 403


def test_image_proxy_rejects_allowed_name_outside_host(make_client):
    client, _ = make_client()
    with client:
        response = client.get(
            "/api/image-proxy",
            params={"url": "https://evil.example.com/x.jpg?cdn=scontent.cdninstagram.com"},
        )
    assert response.status_code == 403


def test_image_proxy_missing_url_is_400(make_client):
    client, _ = make_client()
    with client:
        response = client.get("/api/image-proxy")
    assert response.status_code == 400


def test_image_proxy_passes_bytes_through(make_client):
    client, _ = make_client()
    with client:
        response = client.get(
            "/api/image-proxy",
            params={"url": "https://scontent.cdninstagram.com/x.jpg"},
        )
    assert response.status_code == 200
    assert response.content == PNG_BYTES
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=86400, stale-while-revalidate=3600"
    assert response.headers["access-control-allow-origin"] == "*"


def test_image_proxy_passes_upstream_status(make_client):
    client, _ = make_client()
    with client:
        response = client.get(
            "/api/image-proxy",
            params={"url": "https://scontent.cdninstagram.com/missing.jpg"},
        )
    assert response.status_code == 404
    assert response.json() == {"error": "Failed to fetch image: 404"}


def test_image_proxy_fetch_error_is_500(make_client):
    client, _ = make_client()
    with client:
        response = client.get(
            "/api/image-proxy",
            params={"url": "https://scontent.cdninstagram.com/broken.jpg"},
        )
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to proxy image"}


def test_health(make_client):
    client, _ = make_client()
    with client:
        assert client.get("/health").json() == {"status": "ok"}


def test_unknown_results_type_is_400(make_client):
    client, apify = make_client([DETAILS_ITEM])
    with client:
        response = client.post("/api/instagram", json={"url": "natgeo", "resultsType": "reels"})
    assert response.status_code == 400
    assert apify.calls == []


def test_non_object_body_is_400(make_client):
    client, _ = make_client()
    with client:
        response = client.post("/api/instagram", json=["natgeo"])
    assert response.status_code == 400


def test_image_proxy_rejects_redirect_off_allow_list(make_client):
    client, _ = make_client()
    with client:
        response = client.get(
            "/api/image-proxy",
            params={"url": "https://scontent.cdninstagram.com/redirect.jpg"},
        )
    assert response.status_code == 403
    assert response.json() == {"error": "Domain not allowed"}


def test_default_components_are_built_from_config():
    app = create_app(ScraperConfig(apify_token=None))
    with TestClient(app) as client:
        assert isinstance(app.state.image_proxy, ImageProxy)
        assert isinstance(app.state.scraper, InstagramClient)

        missing = client.get("/api/image-proxy")
        foreign = client.get("/api/image-proxy", params={"url": "https://evil.example.com/x.jpg"})
        scrape = client.get("/api/instagram", params={"url": "natgeo"})

    assert missing.status_code == 400
    assert foreign.status_code == 403
    assert scrape.status_code == 200
    assert scrape.json()["success"] is False
    assert scrape.json()["reason"] == "upstream_auth"
