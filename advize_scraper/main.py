#!/usr/bin/env python3
"""
Advize Instagram integration - main entry point.

Usage:
    python -m advize_scraper.main serve [--host H] [--port P]
    python -m advize_scraper.main profile <url-or-handle> [--results-type T] [--output FILE]
    python -m advize_scraper.main post <post-url> [--output FILE]

Examples:
    python -m advize_scraper.main serve --port 8000
    python -m advize_scraper.main profile https://www.instagram.com/natgeo/
    python -m advize_scraper.main post https://www.instagram.com/p/C1a2b3c4d5/ -o post.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .client import InstagramClient
from .config import ScraperConfig, RESULTS_TYPES, RESULTS_TYPE_DETAILS
from .models import ScrapeResult
from .parsers import UrlParser


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Reduce noise from httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def write_result(result: ScrapeResult, output_file: str | None = None):
    """Write a ScrapeResult as JSON to a file or stdout."""
    output_data = result.to_json_dict()

    if output_file:
        output_path = Path(output_file)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
        logging.getLogger(__name__).info(f"Output saved to: {output_path}")
    else:
        json.dump(output_data, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")


async def scrape(
    target: str,
    mode: str = "profile",
    results_type: str = RESULTS_TYPE_DETAILS,
    config: ScraperConfig | None = None,
) -> ScrapeResult:
    """
    Run one scrape from the command line.

    Args:
        target: Profile URL/handle (profile mode) or post URL (post mode)
        mode: ``profile`` or ``post``
        results_type: Actor result mode for profile scrapes
        config: Scraper configuration (read from the environment if omitted)

    Returns:
        ScrapeResult for the target

    Raises:
        ValueError: If the target cannot be normalized
    """
    logger = logging.getLogger(__name__)
    config = config or ScraperConfig.from_env()

    async with InstagramClient(config) as client:
        if mode == "post":
            post_url = UrlParser.extract_post_url(target)
            if not post_url:
                raise ValueError(f"Invalid Instagram post URL: {target}")
            logger.info(f"Starting post scrape for {post_url}")
            result = await client.fetch_post(post_url)
        else:
            username = UrlParser.extract_username(target)
            if not username:
                raise ValueError(f"Invalid Instagram URL or username: {target}")
            logger.info(f"Starting scrape for @{username}")
            result = await client.fetch_profile(username, results_type)

    if result.success and result.data:
        profile = result.data.profile
        logger.info(f"Profile: @{profile.username}")
        logger.info(f"Followers: {profile.followers_count:,}")
        logger.info(f"Posts analysed: {len(result.data.recent_posts)}")
    else:
        logger.warning(f"Scrape failed: {result.error}")

    return result


def serve(host: str, port: int):
    """Run the HTTP API under uvicorn."""
    import uvicorn

    from .app import create_app

    uvicorn.run(create_app(), host=host, port=port)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Advize Instagram scraping service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    advize-scraper serve --port 8000
    advize-scraper profile natgeo
    advize-scraper profile https://www.instagram.com/natgeo/ --results-type posts
    advize-scraper post https://www.instagram.com/p/C1a2b3c4d5/ --output post.json
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    profile_parser = subparsers.add_parser("profile", help="Scrape one profile")
    profile_parser.add_argument("target", help="Profile URL or username")
    profile_parser.add_argument(
        "--results-type",
        choices=RESULTS_TYPES,
        default=RESULTS_TYPE_DETAILS,
        help="Actor result mode (default: details)",
    )
    profile_parser.add_argument("--output", "-o", default=None, help="Output JSON file path")

    post_parser = subparsers.add_parser("post", help="Scrape one post")
    post_parser.add_argument("target", help="Post or reel URL")
    post_parser.add_argument("--output", "-o", default=None, help="Output JSON file path")

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.verbose)

    if args.command == "serve":
        serve(args.host, args.port)
        return

    try:
        result = asyncio.run(
            scrape(
                target=args.target,
                mode=args.command,
                results_type=getattr(args, "results_type", RESULTS_TYPE_DETAILS),
            )
        )
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(2)

    except KeyboardInterrupt:
        print("\nScraping interrupted by user.", file=sys.stderr)
        sys.exit(130)

    except Exception as e:
        logging.error(f"Scraping failed: {e}")
        sys.exit(1)

    write_result(result, args.output)

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
