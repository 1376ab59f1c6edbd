"""
URL Tracker

Normalizes URLs for comparison and tracks which pages (and fragment-only
"virtual" pages) an exploration run has already counted.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import parse_qsl, urlsplit

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Normalize a URL for comparison.

    Drops the fragment and trailing slash, sorts query parameters and
    lowercases the result. Query parameters are kept so that
    ?category=a and ?category=b count as different pages.
    """
    if not url:
        return ""

    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return url.split("#")[0].rstrip("/").lower()

    normalized = f"{parts.scheme}://{parts.netloc}{parts.path}"
    if parts.query:
        params = sorted(parse_qsl(parts.query, keep_blank_values=True), key=lambda kv: kv[0])
        normalized += "?" + "&".join(f"{key}={value}" for key, value in params)

    return normalized.rstrip("/").lower()


def split_fragment(url: str) -> Tuple[str, str]:
    """Return (url without fragment, raw fragment without '#')"""
    if "#" not in url:
        return url, ""
    base, _, fragment = url.partition("#")
    return base, fragment


def origin_of(url: str) -> str:
    """scheme://host[:port] of a URL, or '' when it has none"""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}".lower()


def is_same_origin(url: str, origin: str) -> bool:
    return bool(url) and origin_of(url) == origin.lower().rstrip("/")


def strip_for_start(url: str) -> str:
    """Start URL form used as the initial page: no fragment, no trailing slash"""
    return split_fragment(url)[0].rstrip("/")


@dataclass
class NavigationCheck:
    """Outcome of comparing the URL before and after an interaction"""
    is_new_page: bool
    is_revisit: bool
    is_fragment_only: bool
    url_key: str
    url_changed: bool = False


class NavigationTracker:
    """
    Tracks visited pages for one exploration run.

    Features:
    - Normalized URL set that only grows
    - Composite "url#fragment" keys for SPA hash navigation
    - New page / revisit / fragment-only classification
    """

    def __init__(self, initial: Optional[Iterable[str]] = None):
        self._visited: Set[str] = set()
        self._order: List[str] = []
        for url in initial or []:
            self.visit_url(url)

    @property
    def visited(self) -> Set[str]:
        return set(self._visited)

    @property
    def visit_order(self) -> List[str]:
        return list(self._order)

    def __len__(self) -> int:
        return len(self._visited)

    def __contains__(self, key: str) -> bool:
        return key in self._visited

    def visit(self, key: str) -> str:
        """Record an already-normalized key (plain URL or composite url#fragment)"""
        if key not in self._visited:
            self._visited.add(key)
            self._order.append(key)
            logger.debug(f"[URL] Visited {key}")
        return key

    def visit_url(self, url: str) -> str:
        return self.visit(normalize_url(url))

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self._visited

    def check(self, url_before: str, url_after: str) -> NavigationCheck:
        """
        Classify the transition from url_before to url_after.

        A change limited to the fragment yields the key "normalized#fragment"
        so it is tracked apart from the bare page.
        """
        normalized_before = normalize_url(url_before)
        normalized_after = normalize_url(url_after)
        hash_before = split_fragment(url_before)[1]
        hash_after = split_fragment(url_after)[1]

        url_changed = normalized_before != normalized_after
        hash_changed = hash_before != hash_after
        is_fragment_only = not url_changed and hash_changed and bool(hash_after)

        if is_fragment_only:
            url_key = f"{normalized_after}#{hash_after}"
        else:
            url_key = normalized_after

        if not url_changed and not is_fragment_only:
            return NavigationCheck(
                is_new_page=False,
                is_revisit=False,
                is_fragment_only=False,
                url_key=url_key,
                url_changed=False,
            )

        is_revisit = url_key in self._visited
        return NavigationCheck(
            is_new_page=not is_revisit,
            is_revisit=is_revisit,
            is_fragment_only=is_fragment_only,
            url_key=url_key,
            url_changed=True,
        )
