from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup


_WS_RE = re.compile(r"\s+")

_META_IMAGE_SELECTORS = (
    'meta[property="og:image"]',
    'meta[property="og:image:url"]',
    'meta[property="og:image:secure_url"]',
    'meta[name="twitter:image"]',
    'meta[name="twitter:image:src"]',
    'meta[property="twitter:image"]',
)


def normalize_text(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def strip_unsafe_blocks(html_fragment: str) -> str:
    """Remove <script> and <style> blocks from an HTML fragment.

    Markup is otherwise kept so the result can still be rendered as content.
    """

    if not html_fragment or ("<script" not in html_fragment.lower() and "<style" not in html_fragment.lower()):
        return html_fragment or ""

    soup = BeautifulSoup(html_fragment, "lxml")
    for tag in soup.select("script, style"):
        tag.decompose()
    root = soup.body or soup
    return root.decode_contents().strip()


def extract_text_from_html_fragment(html_fragment: str) -> str:
    """Convert an HTML snippet (e.g., RSS description) to plain text."""

    soup = BeautifulSoup(html_fragment or "", "lxml")
    for tag in soup.select("script, style, noscript, iframe"):
        tag.decompose()
    return normalize_text(soup.get_text(" ", strip=True))


def make_summary(html_fragment: str, max_chars: int) -> str:
    text = extract_text_from_html_fragment(html_fragment)
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    # Avoid chopping a word in half when there is a nearby space.
    space = cut.rfind(" ")
    if space > max_chars * 0.6:
        cut = cut[:space]
    return cut.rstrip(" ,.;:") + "..."


def _pixel_size(value: object) -> Optional[int]:
    if value is None:
        return None
    m = re.match(r"\s*(\d+)", str(value))
    if not m:
        return None
    return int(m.group(1))


def first_image_src(
    html_fragment: str,
    *,
    base_url: str = "",
    min_pixels: int = 16,
    min_data_uri_chars: int = 200,
    skip_extensions: tuple[str, ...] = (),
) -> Optional[str]:
    """Return the first plausible <img src> of an HTML fragment.

    Tracking pixels (tiny width/height) and stub data URIs are skipped.
    """

    if not html_fragment or "<img" not in html_fragment.lower():
        return None

    soup = BeautifulSoup(html_fragment, "lxml")
    for img in soup.find_all("img"):
        src = str(img.get("src") or img.get("data-src") or "").strip()
        if not src:
            continue

        if src.startswith("data:"):
            if len(src) < min_data_uri_chars:
                continue
            return src

        width = _pixel_size(img.get("width"))
        height = _pixel_size(img.get("height"))
        if (width is not None and width < min_pixels) or (height is not None and height < min_pixels):
            continue

        path = src.split("?", 1)[0].lower()
        if skip_extensions and path.endswith(skip_extensions):
            continue

        return urljoin(base_url, src) if base_url else src

    return None


def extract_meta_image(html: str, *, base_url: str = "") -> Optional[str]:
    """Best-effort Open Graph / Twitter card image from an article page."""

    soup = BeautifulSoup(html or "", "lxml")

    for sel in _META_IMAGE_SELECTORS:
        tag = soup.select_one(sel)
        if tag and tag.get("content"):
            url = str(tag.get("content") or "").strip()
            if url:
                return urljoin(base_url, url) if base_url else url

    return None
