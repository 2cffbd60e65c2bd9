"""
User-Agent and header generation utilities.
Maintains consistency between UA and related headers.
"""

import random
from typing import Optional

from ..config import INSTAGRAM_BASE_URL


# Desktop browser profiles with consistent header sets
UA_PROFILES = {
    "chrome_windows": {
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "sec_ch_ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        "sec_ch_ua_mobile": "?0",
        "sec_ch_ua_platform": '"Windows"',
        "accept_language": "en-US,en;q=0.9",
    },
    "chrome_mac": {
        "user_agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "sec_ch_ua": '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        "sec_ch_ua_mobile": "?0",
        "sec_ch_ua_platform": '"macOS"',
        "accept_language": "en-US,en;q=0.9",
    },
    "firefox_windows": {
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) "
            "Gecko/20100101 Firefox/121.0"
        ),
        "sec_ch_ua": None,  # Firefox doesn't send these
        "sec_ch_ua_mobile": None,
        "sec_ch_ua_platform": None,
        "accept_language": "en-US,en;q=0.5",
    },
}

IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8"


class HeaderGenerator:
    """
    Generates consistent desktop-browser headers.
    Once a profile is selected, it remains consistent for the session.
    """

    def __init__(self, profile_name: Optional[str] = None):
        """
        Initialize with a specific profile or random selection.

        Args:
            profile_name: Specific profile to use, or None for random
        """
        if profile_name and profile_name in UA_PROFILES:
            self.profile_name = profile_name
        else:
            self.profile_name = random.choice(list(UA_PROFILES.keys()))

        self.profile = UA_PROFILES[self.profile_name]

    def get_image_headers(self) -> dict[str, str]:
        """
        Get headers for fetching CDN images.

        The Instagram Referer and a browser User-Agent get past the CDN's
        hotlink protection.
        """
        headers = {
            "User-Agent": self.profile["user_agent"],
            "Referer": f"{INSTAGRAM_BASE_URL}/",
            "Accept": IMAGE_ACCEPT,
            "Accept-Language": self.profile["accept_language"],
            "Sec-Fetch-Dest": "image",
            "Sec-Fetch-Mode": "no-cors",
            "Sec-Fetch-Site": "cross-site",
        }

        # Add Chrome-specific headers if applicable
        if self.profile.get("sec_ch_ua"):
            headers["Sec-CH-UA"] = self.profile["sec_ch_ua"]
            headers["Sec-CH-UA-Mobile"] = self.profile["sec_ch_ua_mobile"]
            headers["Sec-CH-UA-Platform"] = self.profile["sec_ch_ua_platform"]

        return headers
