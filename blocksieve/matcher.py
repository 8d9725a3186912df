#!/usr/bin/env python3
"""
matcher.py - Domain Recognition in Unstructured Text

This module finds the domain name hiding in a line of arbitrary text. It's the
first stage of the pipeline: every input line goes through extract_domain()
and whatever comes out is counted into the unique domain set.

Typical inputs and what we extract:

    0.0.0.0 ads.example.com            →  ads.example.com
    ||Tracker.Example.NET^$important   →  tracker.example.net
    https://cdn.example.org:8443/x.js  →  cdn.example.org
    127.0.0.1 localhost                →  None (single label)
    192.168.1.1                        →  None (final label is numeric)
    # comment about blocking           →  None

Design Decision - First Match Wins:
    Blocklists put exactly one domain on a line, usually after an IP address
    or before a comment. Taking the leftmost valid token is enough for every
    common format and never mistakes the leading IP for part of the domain.
    iter_domains() yields every token for lines carrying several.

Design Decision - Two Labels Minimum:
    A single word ("localhost", "comment") is technically a hostname, but
    accepting it would turn every comment line into a bogus domain. A token
    needs at least one dot.

Key Operations:
    1. Split the line into runs of hostname characters
    2. Drop leading/trailing dots from each run
    3. Validate labels (charset, hyphens, numeric suffix, lengths)
    4. Lower-case the first valid run
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Final, Iterator

import tldextract

# Bundled public suffix snapshot only, never fetch over the network
_tld_extract = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)


# =============================================================================
# LIMITS
# =============================================================================

#: Shortest acceptable token
MIN_DOMAIN_LENGTH: Final[int] = 3

#: RFC 1035 limits
MAX_DOMAIN_LENGTH: Final[int] = 253
MAX_LABEL_LENGTH: Final[int] = 63

#: Hosts-file housekeeping names, not worth blocking
LOCAL_HOSTNAMES: Final[frozenset[str]] = frozenset({
    "localhost", "localhost.localdomain", "local", "broadcasthost",
    "ip6-localhost", "ip6-loopback", "ip6-localnet",
    "ip6-mcastprefix", "ip6-allnodes", "ip6-allrouters", "ip6-allhosts",
})


# =============================================================================
# REGEX PATTERNS
# =============================================================================

#: Candidate run: word characters, dots and hyphens.
#: Underscores and non-ASCII letters are part of the run so "foo_bar.example.com"
#: and "münchen.de" are rejected as a whole instead of yielding
#: "bar.example.com" or "nchen.de".
CANDIDATE_PATTERN: Final[re.Pattern[str]] = re.compile(r"[\w.-]+")

#: One label: alphanumerics and inner hyphens
LABEL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$",
    re.IGNORECASE | re.ASCII,
)

#: Final label: letters only, at least two
SUFFIX_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z]{2,}$", re.IGNORECASE | re.ASCII)


# =============================================================================
# VALIDATION
# =============================================================================

def is_valid_label(label: str) -> bool:
    """
    Check a single dot-separated label.

    Example:
        >>> is_valid_label("ads-1")
        True
        >>> is_valid_label("-ads")
        False
        >>> is_valid_label("")
        False
    """
    return len(label) <= MAX_LABEL_LENGTH and bool(LABEL_PATTERN.match(label))


def is_valid_domain(token: str) -> bool:
    """
    Check whether a whole token is an acceptable domain.

    Rules:
        - at least two labels, none empty
        - labels are alphanumerics and hyphens, no leading/trailing hyphen
        - final label is alphabetic and at least two characters long
        - total length between MIN_DOMAIN_LENGTH and MAX_DOMAIN_LENGTH

    Args:
        token: Candidate without surrounding punctuation

    Returns:
        True if the token is a domain

    Example:
        >>> is_valid_domain("ads.example.com")
        True
        >>> is_valid_domain("192.168.1.1")
        False
        >>> is_valid_domain("example..com")
        False
    """
    if not MIN_DOMAIN_LENGTH <= len(token) <= MAX_DOMAIN_LENGTH:
        return False

    labels = token.split(".")
    if len(labels) < 2:
        return False

    # Numeric suffix means an IPv4 address or a version string
    if not SUFFIX_PATTERN.match(labels[-1]):
        return False

    return all(is_valid_label(label) for label in labels)


# =============================================================================
# EXTRACTION
# =============================================================================

def iter_domains(line: str) -> Iterator[str]:
    """
    Yield every domain found in a line, left to right, lower-cased.

    Args:
        line: Any text

    Yields:
        Canonical domain strings

    Example:
        >>> list(iter_domains("0.0.0.0 a.example.com b.example.org"))
        ['a.example.com', 'b.example.org']
    """
    for match in CANDIDATE_PATTERN.finditer(line):
        # "example.com." (FQDN) and "see example.com." (sentence) both count
        token = match.group().strip(".")
        if is_valid_domain(token):
            yield token.lower()


def extract_domain(line: str) -> str | None:
    """
    Return the first domain in a line, or None if there is none.

    A miss is the normal outcome for blank lines, comments, and IP-only
    entries, so it is signalled with None rather than an exception.

    Args:
        line: Any text

    Returns:
        Lower-cased domain, or None

    Example:
        >>> extract_domain("0.0.0.0 BadHost.Example.net # blocklist entry")
        'badhost.example.net'
        >>> extract_domain("192.168.1.1") is None
        True
    """
    return next(iter_domains(line), None)


@lru_cache(maxsize=65536)
def has_known_suffix(domain: str) -> bool:
    """
    Check that the domain ends in a public suffix (com, co.uk, ...).

    Used by --strict-suffix to drop things like "settings.json" or
    "error.log" that match the grammar but are file names.
    """
    return bool(_tld_extract(domain).suffix)


def is_local_hostname(domain: str) -> bool:
    """True for localhost-style names found at the top of hosts files."""
    return domain in LOCAL_HOSTNAMES
