"""
phishguard/features/url_features.py
-----------------------------------
Lexical features of a page URL for the URL model.

The encoding is purely textual on purpose: the URL model was trained on
exactly these counts, so substring / regex features read the raw URL
text and never a re-normalised form.

Feature list (12 columns, fixed order -> URL_FEATURE_NAMES):
   0  have_ip              URL text contains an IPv4-looking literal
   1  have_at              URL contains "@"
   2  url_length           length of the full URL
   3  url_depth            number of "/" in the path component
   4  redirection          "//" appears after "scheme://"
   5  https_in_domain      "https" appears inside the host name
   6  tiny_url             host matches a known shortening service
   7  prefix_suffix        host name contains "-"
   8  suspicious_words     how many phishing keywords appear in the URL
   9  has_subdomain        host has more than two dots
  10  digit_count          numeric characters in the full URL
  11  special_char_count   characters outside [A-Za-z0-9_] in the full URL
"""

import re
from typing import Dict, Tuple
from urllib.parse import urlsplit

from phishguard.utils.errors import MalformedUrlError

URL_FEATURE_NAMES: Tuple[str, ...] = (
    "have_ip",
    "have_at",
    "url_length",
    "url_depth",
    "redirection",
    "https_in_domain",
    "tiny_url",
    "prefix_suffix",
    "suspicious_words",
    "has_subdomain",
    "digit_count",
    "special_char_count",
)

# Unanchored: "x.co" also hits "netflix.com"
SHORTENING_SERVICES = re.compile(
    r"(bit\.ly|goo\.gl|shorte\.st|go2l\.ink|x\.co|ow\.ly|tinyurl\.com|qr\.net|"
    r"1url\.com|tweez\.me|v\.gd|tr\.im|link\.zip\.net)",
    re.IGNORECASE,
)

SUSPICIOUS_WORDS: Tuple[str, ...] = (
    "login", "secure", "account", "update", "bank", "signin", "verify",
)

_IPV4_LITERAL = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+\.[0-9]+")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL_CHAR = re.compile(r"[^A-Za-z0-9_]")

# Schemes whose URLs always carry an authority and a path of at least "/"
_HIERARCHICAL_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})


def _split_url(url: str) -> Tuple[str, str]:
    """Return (hostname, path) or raise MalformedUrlError."""
    if not isinstance(url, str) or not url.strip():
        raise MalformedUrlError(url, "empty URL")
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname or ""
    except ValueError as e:
        raise MalformedUrlError(url, str(e)) from e

    scheme = parts.scheme.lower()
    if not scheme:
        raise MalformedUrlError(url, "missing scheme")
    if scheme in _HIERARCHICAL_SCHEMES:
        if not hostname:
            raise MalformedUrlError(url, "missing host")
        path = parts.path or "/"
    else:
        path = parts.path
    return hostname, path


def extract_url_features(url: str) -> Dict[str, int]:
    """
    Extract the 12 URL features keyed by name, in URL_FEATURE_NAMES order.

    Raises MalformedUrlError if the URL has no usable scheme / host.
    """
    hostname, path = _split_url(url)
    lower_url = url.lower()
    after_scheme = url[url.find("://") + 3:]

    feats = {
        "have_ip": int(_IPV4_LITERAL.search(url) is not None),
        "have_at": int("@" in url),
        "url_length": len(url),
        "url_depth": path.count("/"),
        "redirection": int("//" in after_scheme),
        "https_in_domain": int("https" in hostname),
        "tiny_url": int(SHORTENING_SERVICES.search(hostname) is not None),
        "prefix_suffix": int("-" in hostname),
        # one per keyword present, as the model was trained
        "suspicious_words": sum(1 for w in SUSPICIOUS_WORDS if w in lower_url),
        "has_subdomain": int(hostname.count(".") > 2),
        "digit_count": len(_DIGIT.findall(url)),
        "special_char_count": len(_SPECIAL_CHAR.findall(url)),
    }
    return {name: feats[name] for name in URL_FEATURE_NAMES}
