"""Tests for manifest decoding and source selection."""

import json

import pytest

from acfunlive.manifest import Representation, derive_hls_url, parse_manifest, select_best

from conftest import manifest_json


def test_select_best_picks_highest_bitrate():
    """The highest bitrate representation wins."""
    reps = [Representation(100, "a"), Representation(500, "b"), Representation(300, "c")]
    assert select_best(reps).url == "b"


def test_select_best_tie_keeps_first():
    """Equal bitrates resolve to the first one listed."""
    reps = [Representation(500, "first"), Representation(200, "x"), Representation(500, "second")]
    assert select_best(reps).url == "first"


def test_select_best_empty():
    assert select_best([]) is None


def test_derive_hls_url():
    """The pull host becomes hlspull and the playlist name is appended."""
    hls = derive_hls_url("https://edgepull.example.com/streamName123?auth=1", "streamName123")
    assert hls == "https://edgehlspull.example.com/streamName123.m3u8"


def test_derive_hls_url_replaces_every_pull():
    hls = derive_hls_url("https://pull.cdn.com/pull/abc.flv", "abc")
    assert hls == "https://hlspull.cdn.com/hlspull/abc.m3u8"


def test_derive_hls_url_missing_stream_name():
    with pytest.raises(ValueError):
        derive_hls_url("https://edgepull.example.com/other.flv", "streamName123")


def test_parse_manifest_decodes_nested_document():
    """videoPlayRes is a JSON string of its own."""
    raw = manifest_json("abc", [(1000, "u1"), (2000, "u2")])
    stream_name, reps = parse_manifest(raw)

    assert stream_name == "abc"
    assert reps == [Representation(1000, "u1"), Representation(2000, "u2")]


def test_parse_manifest_rejects_already_decoded_structure():
    """A dict where the string should be is a shape error, not a shortcut."""
    doc = json.loads(manifest_json("abc", [(1, "u")]))
    with pytest.raises(TypeError):
        parse_manifest(doc)


def test_parse_manifest_missing_adaptation_set():
    raw = json.dumps({'streamName': 'abc', 'liveAdaptiveManifest': []})
    with pytest.raises(IndexError):
        parse_manifest(raw)


def test_parse_manifest_invalid_json():
    with pytest.raises(ValueError):
        parse_manifest("{not json")


def test_parse_manifest_null_bitrate_counts_as_zero():
    raw = json.dumps({
        'streamName': 'abc',
        'liveAdaptiveManifest': [{'adaptationSet': {'representation': [
            {'bitrate': None, 'url': 'u0'},
            {'url': 'u1'},
            {'bitrate': 800, 'url': 'u2'},
        ]}}],
    })

    _, reps = parse_manifest(raw)

    assert [r.bitrate for r in reps] == [0, 0, 800]
    assert select_best(reps).url == 'u2'
