"""
phishguard/features/dom_features.py
-----------------------------------
Structural features of a parsed HTML document for the DOM model.

Accepts either raw HTML (str / bytes, parsed with BeautifulSoup + lxml)
or an already-parsed BeautifulSoup document. Extraction never returns
partial data: either all 13 features are present, or the result is
marked unavailable with a reason.

Feature list (13 columns, fixed order -> DOM_FEATURE_NAMES):
    num_forms, has_password_field, form_action_external_ratio,
    external_link_ratio, empty_link_ratio, external_image_ratio,
    num_scripts, dom_max_depth, text_length, suspicious_keyword_count,
    iframe, mouse_over, right_click
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union
from urllib.parse import urlsplit

from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

from phishguard.utils.logging_utils import get_logger

logger = get_logger()

DOM_FEATURE_NAMES: Tuple[str, ...] = (
    "num_forms",
    "has_password_field",
    "form_action_external_ratio",
    "external_link_ratio",
    "empty_link_ratio",
    "external_image_ratio",
    "num_scripts",
    "dom_max_depth",
    "text_length",
    "suspicious_keyword_count",
    "iframe",
    "mouse_over",
    "right_click",
)

SUSPICIOUS_KEYWORDS: Tuple[str, ...] = (
    "login", "secure", "account", "update", "bank",
    "signin", "verify", "password", "user",
)

# Elements whose content is not part of the rendered body text
_NON_RENDERED = frozenset({"script", "style", "noscript", "template", "head", "title"})

Document = Union[str, bytes, BeautifulSoup]


@dataclass(frozen=True)
class DomFeatureResult:
    """Either a full feature vector or the reason none could be produced."""

    features: Optional[Dict[str, float]] = None
    reason: str = ""

    @property
    def available(self) -> bool:
        return self.features is not None

    @classmethod
    def unavailable(cls, reason: str) -> "DomFeatureResult":
        return cls(features=None, reason=reason)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_domain(raw_url: Optional[str]) -> str:
    """
    Hostname of an absolute URL, lower-cased without a trailing dot.

    Relative, empty or unparsable URLs give "" which the ratios below
    count as same-origin.
    """
    if not isinstance(raw_url, str) or not raw_url.strip():
        return ""
    try:
        parts = urlsplit(raw_url.strip())
        if not parts.scheme:
            return ""
        host = parts.hostname or ""
    except ValueError:
        return ""
    return host.lower().rstrip(".")


def _is_external(raw_url: Optional[str], origin: str) -> bool:
    domain = get_domain(raw_url)
    return bool(domain) and domain != origin


def _ratio(count: int, total: int) -> float:
    return count / total if total else 0.0


def _root_element(soup: BeautifulSoup) -> Optional[Tag]:
    for child in soup.children:
        if isinstance(child, Tag):
            return child
    return None


def _max_depth(root: Tag) -> int:
    """Depth of the element tree below root (root = 1), without recursion."""
    deepest = 0
    stack = [(root, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        for child in node.children:
            if isinstance(child, Tag):
                stack.append((child, depth + 1))
    return deepest


def _rendered_text(soup: BeautifulSoup) -> str:
    body = soup.body
    if body is None:
        return ""
    chunks = []
    for s in body.find_all(string=True):
        if any(p.name in _NON_RENDERED for p in s.parents if isinstance(p, Tag)):
            continue
        if type(s) is not NavigableString:
            # comments, doctype, script and style bodies
            continue
        chunks.append(str(s))
    return "".join(chunks).strip()


def _count_keywords(text: str, keywords: Iterable[str]) -> int:
    lower = text.lower()
    return sum(lower.count(kw) for kw in keywords)


def _to_soup(document: Document) -> BeautifulSoup:
    if isinstance(document, BeautifulSoup):
        return document
    return BeautifulSoup(document, "lxml")


# ---------------------------------------------------------------------------
# Main feature extractor
# ---------------------------------------------------------------------------

def extract_dom_features(document: Optional[Document], page_url: str) -> DomFeatureResult:
    """
    Extract the 13 DOM features from `document` as seen at `page_url`.

    Returns DomFeatureResult.unavailable(...) when the document is missing,
    empty, or cannot be inspected; never raises for a bad document.
    """
    if document is None:
        return DomFeatureResult.unavailable("no document")
    if isinstance(document, (str, bytes)) and not document.strip():
        return DomFeatureResult.unavailable("empty document")

    try:
        soup = _to_soup(document)
        root = _root_element(soup)
        if root is None:
            return DomFeatureResult.unavailable("document has no root element")
        features = _extract(soup, root, page_url)
    except Exception as e:
        logger.warning(f"DOM feature extraction failed: {type(e).__name__}: {e}")
        return DomFeatureResult.unavailable(f"extraction_error:{type(e).__name__}")

    return DomFeatureResult(features=features)


def _extract(soup: BeautifulSoup, root: Tag, page_url: str) -> Dict[str, float]:
    origin = get_domain(page_url)

    # 1) Forms; a missing or empty action submits to the page itself
    forms = soup.find_all("form")
    num_forms = len(forms)
    ext_forms = sum(1 for f in forms if _is_external(f.get("action") or page_url, origin))
    has_password = any(
        (inp.get("type") or "").strip().lower() == "password"
        for inp in soup.find_all("input")
    )

    # 2) Links (only anchors that carry an href)
    anchors = [a for a in soup.find_all("a") if a.has_attr("href")]
    ext_links = sum(1 for a in anchors if _is_external(a.get("href"), origin))
    empty_links = sum(1 for a in anchors if (a.get("href") or "").strip() in ("", "#"))

    # 3) Images
    images = soup.find_all("img")
    ext_images = sum(1 for img in images if _is_external(img.get("src"), origin))

    # 4) Text
    text = _rendered_text(soup)

    feats = {
        "num_forms": num_forms,
        "has_password_field": int(has_password),
        "form_action_external_ratio": _ratio(ext_forms, num_forms),
        "external_link_ratio": _ratio(ext_links, len(anchors)),
        "empty_link_ratio": _ratio(empty_links, len(anchors)),
        "external_image_ratio": _ratio(ext_images, len(images)),
        "num_scripts": len(soup.find_all("script")),
        "dom_max_depth": _max_depth(root),
        "text_length": len(text),
        "suspicious_keyword_count": _count_keywords(text, SUSPICIOUS_KEYWORDS),
        "iframe": int(soup.find("iframe") is not None),
        "mouse_over": int(soup.find(lambda t: t.has_attr("onmouseover")) is not None),
        "right_click": int("contextmenu" in str(root).lower()),
    }
    return {name: feats[name] for name in DOM_FEATURE_NAMES}
