"""Tests for mapping references onto storage keys."""

import pytest
from hypothesis import given, settings, strategies as st

from presigned_media.services.reference_resolver import (
    is_absolute_url,
    is_local_url,
    resolve_storage_key,
)

key_segment = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_."),
    min_size=1,
    max_size=20,
)
key_strategy = st.lists(key_segment, min_size=1, max_size=4).map("/".join)


class TestResolveStorageKey:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_reference_has_no_key(self, value):
        assert resolve_storage_key(value) is None

    def test_bare_key_is_returned_unchanged(self):
        assert resolve_storage_key("images/1700000000-uuid.png") == "images/1700000000-uuid.png"

    def test_path_style_url(self):
        url = (
            "https://host/file/bucket-name/images/a.png"
            "?X-Amz-Expires=3600&X-Amz-Date=20240101T000000Z"
        )
        assert resolve_storage_key(url) == "images/a.png"

    def test_path_style_url_without_query(self):
        assert resolve_storage_key("https://f003.backblazeb2.com/file/panchayat/gallery/x.jpg") == "gallery/x.jpg"

    def test_virtual_host_style_url(self):
        url = (
            "https://my-bucket.s3.ap-south-1.amazonaws.com/images/team/photo.jpg"
            "?X-Amz-Signature=deadbeef"
        )
        assert resolve_storage_key(url) == "images/team/photo.jpg"

    def test_legacy_s3_path_style_url(self):
        url = "https://s3.ap-south-1.amazonaws.com/my-bucket/docs/file.pdf?X-Amz-Expires=60"
        assert resolve_storage_key(url) == "docs/file.pdf"

    def test_percent_encoded_key_is_decoded(self):
        url = "https://my-bucket.s3.us-east-1.amazonaws.com/images/village%20hall.png?x=1"
        assert resolve_storage_key(url) == "images/village hall.png"

    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/images/a.png",
            "https://host/file/bucket-only",
            "https://host/file//a.png",
            "https://my-bucket.s3.amazonaws.com/",
        ],
    )
    def test_unrecognised_url_returns_none(self, url):
        assert resolve_storage_key(url) is None

    @pytest.mark.parametrize("value", ["blob:https://app/1234-5678", "data:image/png;base64,AAAA"])
    def test_local_urls_are_not_refreshable(self, value):
        assert resolve_storage_key(value) is None

    @given(key=key_strategy)
    @settings(max_examples=100)
    def test_path_style_round_trip(self, key):
        url = f"https://f000.example.com/file/bucket-name/{key}?X-Amz-Expires=60"
        assert resolve_storage_key(url) == key

    @given(key=key_strategy)
    @settings(max_examples=50)
    def test_bare_keys_are_fixed_points(self, key):
        assert resolve_storage_key(key) == key
        assert resolve_storage_key(resolve_storage_key(key)) == key


def test_is_absolute_url():
    assert is_absolute_url("https://a/b")
    assert is_absolute_url("HTTP://a/b")
    assert not is_absolute_url("images/a.png")
    assert not is_absolute_url("data:image/png;base64,AA")
    assert not is_absolute_url(None)


def test_is_local_url():
    assert is_local_url("blob:https://x/1")
    assert is_local_url("data:text/plain,hi")
    assert not is_local_url("https://x/1")
    assert not is_local_url(None)
