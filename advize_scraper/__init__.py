"""
Advize Instagram integration - scrape public Instagram profiles and posts
through a managed scraping actor and proxy CDN images for the platform UI.

This package:
- Normalizes profile/post URLs and bare handles
- Runs the scraping actor once per request and maps its dataset items
- Computes engagement statistics over recent posts
- Serves the results and an image proxy over HTTP
"""

from .client import InstagramClient
from .config import ScraperConfig
from .models import InstagramAnalytics, PostData, ProfileData, ScrapeResult
from .proxy import ImageProxy

__version__ = "1.0.0"
__all__ = [
    "ImageProxy",
    "InstagramAnalytics",
    "InstagramClient",
    "PostData",
    "ProfileData",
    "ScrapeResult",
    "ScraperConfig",
]
