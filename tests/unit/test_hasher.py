"""Tests for canonical hashing and identity keys."""

from __future__ import annotations

from contribattest.core.hasher import (
    canonical_json_bytes,
    canonical_url,
    ledger_hash,
    relationship_key,
    subject_key,
)


class TestCanonicalJson:
    def test_sorted_and_compact(self):
        assert canonical_json_bytes({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'

    def test_ledger_hash_is_prefixed_sha256(self):
        digest = ledger_hash({"x": 1})
        assert digest.startswith("0x")
        assert len(digest) == 66

    def test_key_order_does_not_matter(self):
        assert ledger_hash({"a": 1, "b": 2}) == ledger_hash({"b": 2, "a": 1})


class TestCanonicalUrl:
    def test_scheme_and_host_case_folded(self):
        assert canonical_url("HTTPS://GitHub.com/Org/Repo") == "https://github.com/Org/Repo"

    def test_trailing_slash_and_whitespace_dropped(self):
        assert canonical_url("  https://github.com/org/repo/ ") == "https://github.com/org/repo"

    def test_path_case_preserved(self):
        assert canonical_url("https://x.io/A") != canonical_url("https://x.io/a")


class TestIdentityKeys:
    def test_subject_key_ignores_url_noise(self):
        assert subject_key("https://github.com/ada") == subject_key("HTTPS://GITHUB.COM/ada/")

    def test_distinct_urls_distinct_keys(self):
        assert subject_key("https://github.com/ada") != subject_key("https://github.com/bob")

    def test_relationship_key_is_ordered(self):
        assert relationship_key("s", "p", "o") != relationship_key("o", "p", "s")
        assert relationship_key("s", "p", "o") == relationship_key("s", "p", "o")

    def test_subject_and_relationship_namespaces_differ(self):
        assert subject_key("s") != relationship_key("s", "", "")
