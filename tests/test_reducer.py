import itertools
import random

from blocksieve.reducer import is_covered_by, reduce_domains, walk_parent_domains


def naive_reduce(domains):
    """All-pairs reference."""
    return {
        a for a in domains
        if not any(a != b and is_covered_by(a, b) for b in domains)
    }


def test_is_covered_by():
    assert is_covered_by("example.com", "example.com")
    assert is_covered_by("sub.example.com", "example.com")
    assert is_covered_by("a.b.example.com", "example.com")
    assert not is_covered_by("notexample.com", "example.com")
    assert not is_covered_by("example.com", "sub.example.com")


def test_walk_parent_domains():
    assert walk_parent_domains("a.b.example.com") == ("b.example.com", "example.com", "com")
    assert walk_parent_domains("example.com") == ("com",)


def test_subdomain_removed():
    domains = {"example.com": 1, "sub.example.com": 1, "other.org": 1}
    assert reduce_domains(domains) == 1
    assert set(domains) == {"example.com", "other.org"}


def test_deep_subdomain_removed_without_intermediate():
    domains = {"a.b.c.example.com": 1, "example.com": 1}
    reduce_domains(domains)
    assert set(domains) == {"example.com"}


def test_label_boundary_is_respected():
    domains = {"example.com": 1, "notexample.com": 1, "badexample.com": 1}
    assert reduce_domains(domains) == 0
    assert set(domains) == {"example.com", "notexample.com", "badexample.com"}


def test_counts_are_kept_for_survivors():
    domains = {"example.com": 3, "sub.example.com": 5}
    reduce_domains(domains)
    assert domains == {"example.com": 3}


def test_empty_set():
    domains = {}
    assert reduce_domains(domains) == 0
    assert domains == {}


def test_idempotent():
    domains = dict.fromkeys(["x.example.com", "example.com", "y.x.example.com", "z.org"], 1)
    reduce_domains(domains)
    once = dict(domains)
    assert reduce_domains(domains) == 0
    assert domains == once


def test_order_independent():
    names = ["a.b.example.com", "b.example.com", "example.com",
             "notexample.com", "c.notexample.com", "other.org", "x.y.other.org"]
    results = set()
    for perm in itertools.permutations(names, len(names)):
        domains = dict.fromkeys(perm, 1)
        reduce_domains(domains)
        results.add(frozenset(domains))
    assert results == {frozenset({"example.com", "notexample.com", "other.org"})}


def test_matches_all_pairs_reference():
    rng = random.Random(1234)
    labels = ["a", "b", "ads", "cdn", "example", "notexample", "x-y"]
    suffixes = ["com", "org", "net"]
    names = set()
    for _ in range(300):
        depth = rng.randint(1, 4)
        names.add(".".join(rng.choice(labels) for _ in range(depth)) + "." + rng.choice(suffixes))

    domains = dict.fromkeys(names, 1)
    reduce_domains(domains)

    assert set(domains) == naive_reduce(names)
    for a, b in itertools.permutations(domains, 2):
        assert not is_covered_by(a, b)
