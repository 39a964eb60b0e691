"""
Stream manifest decoding.

The play API returns the manifest as a JSON string inside the JSON response,
so it is decoded separately from the envelope.
"""

import json
from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Representation:
    """One encoding of a live stream."""
    bitrate: int
    url: str


def parse_manifest(video_play_res: str) -> Tuple[str, List[Representation]]:
    """
    Decode the nested manifest document.

    Args:
        video_play_res: Raw ``data.videoPlayRes`` string from the play API.

    Returns:
        Tuple of (streamName, representations of the first adaptive manifest).

    Raises:
        ValueError: If the string is not valid JSON.
        KeyError, IndexError, TypeError: If the document has an unexpected shape.
    """
    doc = json.loads(video_play_res)
    stream_name = doc['streamName']
    entries = doc['liveAdaptiveManifest'][0]['adaptationSet']['representation']

    representations = [
        Representation(bitrate=int(r.get('bitrate') or 0), url=r['url'])
        for r in entries
    ]
    return stream_name, representations


def select_best(representations: List[Representation]) -> Optional[Representation]:
    """Highest bitrate wins; the first one listed wins a tie."""
    if not representations:
        return None
    return max(representations, key=lambda r: r.bitrate)


def derive_hls_url(flv_url: str, stream_name: str) -> str:
    """
    Build the HLS playlist URL matching an FLV pull URL.

    The CDN serves HLS from the same host with ``pull`` renamed to
    ``hlspull``, e.g. ``https://edgepull.example.com/abc?auth=1`` becomes
    ``https://edgehlspull.example.com/abc.m3u8``.

    Raises:
        ValueError: If stream_name does not occur in flv_url.
    """
    i = flv_url.index(stream_name)
    return flv_url[:i].replace("pull", "hlspull") + stream_name + ".m3u8"
