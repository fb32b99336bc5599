"""
Content fetcher: YouTube transcripts and readable article text.

Returns a bounded plain-text blob or raises ContentFetchError. Callers
are expected to impose their own overall deadline on fetch().
"""
import json
import logging
import re
import time
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from shared.utils.constants import FETCH_USER_AGENT, MAX_CONTENT_LENGTH
from shared.utils.exceptions import ContentFetchError

logger = logging.getLogger(__name__)

YOUTUBE_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
)
YOUTUBE_HOSTS = ("youtube.com", "youtu.be")
TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"

STRIPPED_TAGS = ["script", "style", "noscript"]
MAIN_CONTENT_SELECTORS = ("article", "main", '[role="main"]', ".content", ".post", ".article")

_WHITESPACE = re.compile(r"\s+")


def extract_youtube_id(url: str) -> Optional[str]:
    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def get_content_type(url: str) -> str:
    """'video' for YouTube hosts, 'article' for everything else."""
    host = (urlparse(url).hostname or "").lower()
    if any(host == h or host.endswith(f".{h}") for h in YOUTUBE_HOSTS):
        return "video"
    return "article"


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def extract_transcript_text(xml: str) -> str:
    """Join the <text> cues of a timedtext document; entities are decoded by the parser."""
    soup = BeautifulSoup(xml, "html.parser")
    cues = [cue.get_text() for cue in soup.find_all("text")]
    return collapse_whitespace(" ".join(cue for cue in cues if cue))


def extract_readable_text(html: str) -> str:
    """Main-content text of an HTML page, falling back to <body>."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(STRIPPED_TAGS):
        tag.decompose()

    text = ""
    for selector in MAIN_CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            text = node.get_text(" ")
            break

    if not text:
        body = soup.body or soup
        text = body.get_text(" ")

    return collapse_whitespace(text)


class ContentFetcher:
    """
    Fetches the text behind a content URL.

    One instance is shared by the application; each fetch opens its own
    short-lived httpx client.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_length: int = MAX_CONTENT_LENGTH,
        user_agent: str = FETCH_USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_length = max_length
        self.user_agent = user_agent
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    def fetch(self, url: str) -> str:
        start_time = time.time()
        video_id = extract_youtube_id(url)

        logger.info(json.dumps({
            "step": "CONTENT_FETCH",
            "status": "starting",
            "content_type": "video" if video_id else "article",
        }))

        if video_id:
            text = self._fetch_transcript(url, video_id)
        else:
            text = self._fetch_html(url)

        text = text[:self.max_length]
        logger.info(json.dumps({
            "step": "CONTENT_FETCH",
            "status": "complete",
            "output": {"content_length": len(text)},
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return text

    def _fetch_transcript(self, url: str, video_id: str) -> str:
        try:
            with self._client() as client:
                response = client.get(TIMEDTEXT_URL, params={"lang": "en", "v": video_id})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Transcript request failed for video {video_id}: {e}")
            raise ContentFetchError(url, f"Unable to fetch transcript for YouTube video: {video_id}") from e

        transcript = extract_transcript_text(response.text) if response.is_success else ""
        if not transcript:
            raise ContentFetchError(url, f"Unable to fetch transcript for YouTube video: {video_id}")
        return transcript

    def _fetch_html(self, url: str) -> str:
        try:
            with self._client() as client:
                response = client.get(url)
        except httpx.TimeoutException as e:
            raise ContentFetchError(url, "Timed out fetching content") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ContentFetchError(url, f"Failed to fetch content: {e}") from e

        if not response.is_success:
            raise ContentFetchError(
                url, f"Failed to fetch content: {response.status_code} {response.reason_phrase}"
            )
        return extract_readable_text(response.text)
