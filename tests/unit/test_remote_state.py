"""Tests for the remote state checker — dedup against the manifest index."""

from __future__ import annotations

from pathlib import Path

import pytest

from bottlepush.core.remote_state import RemoteStateChecker, published_version_tags
from bottlepush.models.bottles import BottleDescriptor, ReleaseKey
from bottlepush.registry import (
    AmbiguousRemoteState,
    MalformedRegistryResponse,
    RegistryUnreachable,
)


def _descriptor(tag: str, *, pkg_version: str = "1.2.3", rebuild: int = 0) -> BottleDescriptor:
    return BottleDescriptor(
        name="foo",
        pkg_version=pkg_version,
        rebuild=rebuild,
        platform_tag=tag,
        content_hash="0" * 64,
        source_path=Path(f"foo-{pkg_version}.{tag}.bottle.tar.gz"),
    )


KEY = ReleaseKey(name="foo", pkg_version="1.2.3")


class TestCheck:
    def test_published_platform_is_filtered(self, make_client, manifest_index):
        client = make_client({("foo", "1.2.3"): manifest_index("1.2.3.arm64")})
        batch = [_descriptor("arm64"), _descriptor("x86_64")]

        state = RemoteStateChecker(client).check(KEY, batch)

        assert [d.platform_tag for d in state.survivors] == ["x86_64"]
        assert [d.platform_tag for d in state.already_published] == ["arm64"]
        assert state.keep_old is True
        assert state.published_tags == frozenset({"1.2.3.arm64"})

    def test_everything_published_is_empty(self, make_client, manifest_index):
        client = make_client({("foo", "1.2.3"): manifest_index("1.2.3.arm64", "1.2.3.x86_64")})
        state = RemoteStateChecker(client).check(KEY, [_descriptor("arm64"), _descriptor("x86_64")])
        assert state.is_empty

    def test_not_found_keeps_everything(self, make_client):
        client = make_client()
        batch = [_descriptor("arm64"), _descriptor("x86_64")]
        state = RemoteStateChecker(client).check(KEY, batch)
        assert state.survivors == batch
        assert state.keep_old is False

    @pytest.mark.parametrize(
        "error",
        [RegistryUnreachable("timeout"), MalformedRegistryResponse("garbage")],
    )
    def test_fetch_failures_keep_everything(self, make_client, error):
        client = make_client(fetch_error=error)
        batch = [_descriptor("arm64")]
        state = RemoteStateChecker(client).check(KEY, batch)
        assert state.survivors == batch
        assert state.keep_old is False

    def test_fetch_always_forced(self, make_client):
        client = make_client()
        RemoteStateChecker(client).check(KEY, [_descriptor("arm64")])
        assert client.fetches == [("foo", "1.2.3", True)]

    def test_rebuild_queries_rebuild_index(self, make_client, manifest_index):
        key = ReleaseKey(name="foo", pkg_version="1.2.3", rebuild=1)
        client = make_client({("foo", "1.2.3-1"): manifest_index("1.2.3.arm64.1")})
        state = RemoteStateChecker(client).check(
            key, [_descriptor("arm64", rebuild=1), _descriptor("x86_64", rebuild=1)]
        )
        assert client.fetches[0][1] == "1.2.3-1"
        assert [d.platform_tag for d in state.survivors] == ["x86_64"]

    def test_other_rebuild_is_not_a_duplicate(self, make_client, manifest_index):
        key = ReleaseKey(name="foo", pkg_version="1.2.3", rebuild=1)
        client = make_client({("foo", "1.2.3-1"): manifest_index("1.2.3.arm64")})
        state = RemoteStateChecker(client).check(key, [_descriptor("arm64", rebuild=1)])
        assert len(state.survivors) == 1

    def test_ambiguous_index_fails_closed(self, make_client):
        index = {"manifests": [{"annotations": {}}, {"digest": "sha256:abc"}]}
        client = make_client({("foo", "1.2.3"): index})
        with pytest.raises(AmbiguousRemoteState):
            RemoteStateChecker(client).check(KEY, [_descriptor("arm64")])


class TestPublishedVersionTags:
    def test_reads_ref_names(self, manifest_index):
        assert published_version_tags(manifest_index("a", "b")) == frozenset({"a", "b"})

    def test_empty_index(self):
        assert published_version_tags({"manifests": []}) == frozenset()

    def test_non_dict_entry_is_ambiguous(self):
        with pytest.raises(AmbiguousRemoteState):
            published_version_tags({"manifests": ["oops"]})
