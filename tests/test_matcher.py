import pytest

from blocksieve.matcher import (
    extract_domain,
    has_known_suffix,
    is_local_hostname,
    is_valid_domain,
    is_valid_label,
    iter_domains,
)


@pytest.mark.parametrize("line, expected", [
    ("example.com", "example.com"),
    ("  Example.COM\n", "example.com"),
    ("0.0.0.0 badhost.example.net # blocklist entry", "badhost.example.net"),
    ("127.0.0.1\tads.tracker.io", "ads.tracker.io"),
    ("||Tracker.Example.NET^$important", "tracker.example.net"),
    ("https://cdn.example.org:8443/lib/x.js?v=1", "cdn.example.org"),
    ('"quoted.example.com",', "quoted.example.com"),
    ("fqdn.example.com.", "fqdn.example.com"),
    ("local-zone: \"zone.example.com\" always_refuse", "zone.example.com"),
    ("mail from user@mx.example.de rejected", "mx.example.de"),
    ("x-1.a-b.example.travel", "x-1.a-b.example.travel"),
])
def test_extract_domain_found(line, expected):
    assert extract_domain(line) == expected


@pytest.mark.parametrize("line", [
    "",
    "\n",
    "# just a comment about blocking",
    "! adblock style comment",
    "192.168.1.1",
    "0.0.0.0",
    "localhost",
    "version 1.2.3",
    "a.b",
    "example.c",
    "example..com",
    "-bad.example.com",
    "bad-.example.com",
    "under_score.example.com",
    "example.c0m",
    "0.0.0.0 münchen.de",
    "straße.example.de",
])
def test_extract_domain_not_found(line):
    assert extract_domain(line) is None


def test_leading_ip_is_skipped():
    assert extract_domain("10.0.0.1 host.example.com") == "host.example.com"


def test_invalid_candidate_falls_through_to_next():
    assert extract_domain("-bad.example.com good.example.com") == "good.example.com"


def test_iter_domains_yields_all_in_order():
    line = "0.0.0.0 a.example.com B.example.org 1.2.3.4 c.example.net"
    assert list(iter_domains(line)) == ["a.example.com", "b.example.org", "c.example.net"]


def test_iter_domains_is_lazy():
    found = iter_domains("a.example.com b.example.com")
    assert next(found) == "a.example.com"


def test_extract_domain_is_first_of_iter_domains():
    line = "see first.example.com and second.example.com"
    assert extract_domain(line) == next(iter_domains(line))


def test_is_valid_label():
    assert is_valid_label("a")
    assert is_valid_label("ads-1")
    assert not is_valid_label("")
    assert not is_valid_label("-ads")
    assert not is_valid_label("ads-")
    assert not is_valid_label("a" * 64)
    assert is_valid_label("a" * 63)


def test_is_valid_domain_length_limits():
    label = "a" * 60
    long_domain = ".".join([label] * 5) + ".com"
    assert len(long_domain) > 253
    assert not is_valid_domain(long_domain)
    assert is_valid_domain("ab.cd")


def test_is_valid_domain_numeric_suffix():
    assert not is_valid_domain("10.0.0.1")
    assert not is_valid_domain("example.123")
    assert is_valid_domain("123.example")


def test_has_known_suffix():
    assert has_known_suffix("example.com")
    assert has_known_suffix("example.co.uk")
    assert not has_known_suffix("build.xyzzy")


def test_is_local_hostname():
    assert is_local_hostname("localhost.localdomain")
    assert not is_local_hostname("example.com")


def test_non_ascii_word_is_not_cut_into_a_domain():
    assert list(iter_domains("münchen.de www.example.com")) == ["www.example.com"]
