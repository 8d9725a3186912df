#!/usr/bin/env python3
"""
reducer.py - Subdomain Pruning for Wildcard Blocklists

An RPZ entry for example.com is written together with *.example.com, so it
blocks the domain AND everything below it. Any sub.example.com entry in the
same zone is then dead weight. This module removes those entries.

COVERING RELATION:
    A is covered by B when A == B or A ends with "." + B.

        sub.example.com   covered by  example.com     (strict subdomain)
        a.b.example.com   covered by  example.com     (transitive)
        notexample.com    NOT covered by example.com  (no label boundary)

    The dot is mandatory: a plain endswith() would wrongly prune
    badexample.com when example.com is present.

ALGORITHM:
    Instead of comparing all pairs (O(n²)), walk each domain's parents
    (a.b.example.com → b.example.com → example.com → com) and look them up
    in the set. Same result, O(n · depth). Since coverage is transitive and
    removing a covered entry never un-covers another, the outcome is the
    unique minimal set, whatever the iteration order.
"""

from __future__ import annotations

from functools import lru_cache


def is_covered_by(domain: str, parent: str) -> bool:
    """
    Check whether parent blocks domain (equal, or dot-delimited suffix).

    Example:
        >>> is_covered_by("sub.example.com", "example.com")
        True
        >>> is_covered_by("notexample.com", "example.com")
        False
    """
    return domain == parent or domain.endswith("." + parent)


@lru_cache(maxsize=65536)
def walk_parent_domains(domain: str) -> tuple[str, ...]:
    """
    Walk up the domain hierarchy to find all strict parent domains.

    Example: "a.b.example.com" -> ("b.example.com", "example.com", "com")

    Returns tuple for hashability (caching).
    """
    parents = []
    dot = domain.find(".")
    while dot != -1:
        parents.append(domain[dot + 1:])
        dot = domain.find(".", dot + 1)
    return tuple(parents)


def reduce_domains(domains: dict[str, int]) -> int:
    """
    Remove every domain covered by another domain of the set, in place.

    Args:
        domains: Unique domain set (domain -> occurrence count)

    Returns:
        Number of removed domains

    Example:
        >>> found = {"example.com": 1, "sub.example.com": 2, "other.org": 1}
        >>> reduce_domains(found)
        1
        >>> sorted(found)
        ['example.com', 'other.org']
    """
    # Collect first, the dict cannot change size while being iterated
    covered = [
        domain
        for domain in domains
        if any(parent in domains for parent in walk_parent_domains(domain))
    ]

    for domain in covered:
        del domains[domain]

    return len(covered)
