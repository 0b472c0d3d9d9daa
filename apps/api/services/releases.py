"""Usenet release feed parsing and ranking.

Turns an indexer RSS feed into ``Release`` records, infers quality/codec/source
/group from the scene-style release title, and orders candidates against a
requested quality preference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence
from xml.etree.ElementTree import ParseError

import defusedxml.ElementTree as DefusedET

logger = logging.getLogger(__name__)

GIB = 1024 ** 3
MAX_RELEASES = 20

# (label, resolution, tokens) checked in order; first match wins.
_QUALITY_RULES = (
    ("4K", "3840x2160", ("2160P", "4K", "UHD")),
    ("1080p", "1920x1080", ("1080P",)),
    ("720p", "1280x720", ("720P",)),
    ("480p", "720x480", ("480P", "SD")),
)
_CODEC_RULES = (
    ("x265", ("X265", "HEVC", "H265")),
    ("x264", ("X264", "H264", "AVC")),
    ("XviD", ("XVID",)),
)
_SOURCE_RULES = (
    ("BluRay", ("BLURAY", "BLU-RAY", "BDRIP")),
    ("WEB-DL", ("WEB-DL", "WEBDL")),
    ("WEBRip", ("WEBRIP",)),
    ("HDTV", ("HDTV",)),
    ("DVD", ("DVDRIP", "DVD")),
    ("CAM", ("CAM", "HDCAM")),
    ("HDTS", ("HDTS", "TELESYNC")),
)
_GROUP_RE = re.compile(r"-([A-Za-z0-9]+)$")

_FALLBACK_QUALITY_SCORES = {"1080p": 80, "720p": 60, "4K": 50}
_SOURCE_SCORES = {
    "BluRay": 30,
    "WEB-DL": 25,
    "WEBRip": 20,
    "HDTV": 15,
    "DVD": 10,
    "CAM": -50,
    "HDTS": -50,
}
_CODEC_SCORES = {"x265": 10, "x264": 8}


class ReleaseFeedError(ValueError):
    """Raised when the indexer returns a document that is not a parseable feed."""


@dataclass(frozen=True)
class Release:
    id: str
    title: str
    size: int
    download_url: str
    quality: Optional[str] = None
    resolution: Optional[str] = None
    codec: Optional[str] = None
    source: Optional[str] = None
    group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReleaseMetadata:
    quality: Optional[str]
    resolution: Optional[str]
    codec: Optional[str]
    source: Optional[str]
    group: Optional[str]


def _first_match(upper_title: str, rules) -> Optional[tuple]:
    for rule in rules:
        if any(token in upper_title for token in rule[-1]):
            return rule
    return None


def parse_release_title(title: str) -> ReleaseMetadata:
    """Infer release metadata from a title like ``Movie.2024.1080p.BluRay.x264-GROUP``."""
    upper = (title or "").upper()

    quality_rule = _first_match(upper, _QUALITY_RULES)
    codec_rule = _first_match(upper, _CODEC_RULES)
    source_rule = _first_match(upper, _SOURCE_RULES)
    group_match = _GROUP_RE.search(title or "")

    return ReleaseMetadata(
        quality=quality_rule[0] if quality_rule else None,
        resolution=quality_rule[1] if quality_rule else None,
        codec=codec_rule[0] if codec_rule else None,
        source=source_rule[0] if source_rule else None,
        group=group_match.group(1) if group_match else None,
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _text(element, name: str) -> str:
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _digits(value: Optional[str]) -> Optional[int]:
    text = (value or "").strip()
    return int(text) if text.isdigit() else None


def _item_size(item, enclosure) -> int:
    if enclosure is not None:
        length = _digits(enclosure.get("length"))
        if length is not None:
            return length
    explicit = _digits(_text(item, "size"))
    if explicit is not None:
        return explicit
    # newznab feeds carry size as <newznab:attr name="size" value="..."/>
    for child in item:
        if _local_name(child.tag) == "attr" and child.get("name") == "size":
            value = _digits(child.get("value"))
            if value is not None:
                return value
    return 0


def parse_release_feed(document: str) -> List[Release]:
    """Parse every ``<item>`` of an RSS feed into a Release, in feed order."""
    if not (document or "").strip():
        return []
    try:
        root = DefusedET.fromstring(document)
    except ParseError as exc:
        raise ReleaseFeedError(f"Release feed is not valid XML: {exc}") from exc

    releases: List[Release] = []
    for item in root.iter():
        if _local_name(item.tag) != "item":
            continue
        title = _text(item, "title")
        release_id = _text(item, "guid")
        enclosure = next((child for child in item if _local_name(child.tag) == "enclosure"), None)
        if not release_id or not title:
            continue

        download_url = ""
        if enclosure is not None and enclosure.get("url"):
            download_url = enclosure.get("url", "")
        else:
            download_url = _text(item, "link")

        metadata = parse_release_title(title)
        releases.append(
            Release(
                id=release_id,
                title=title,
                size=_item_size(item, enclosure),
                download_url=download_url,
                quality=metadata.quality,
                resolution=metadata.resolution,
                codec=metadata.codec,
                source=metadata.source,
                group=metadata.group,
            )
        )
    logger.debug("Parsed %s releases from feed", len(releases))
    return releases


def score_release(release: Release, preference: str) -> int:
    """Score a release against a quality preference; higher is better."""
    score = 0
    if release.quality is not None and release.quality == preference:
        score += 100
    else:
        score += _FALLBACK_QUALITY_SCORES.get(release.quality or "", 0)

    score += _SOURCE_SCORES.get(release.source or "", 0)
    score += _CODEC_SCORES.get(release.codec or "", 0)

    if release.size > 20 * GIB:
        score -= 30
    elif release.size > 10 * GIB:
        score -= 15
    return score


def rank_releases(releases: Sequence[Release], preference: str) -> List[Release]:
    """Order releases best-first; ties keep their original order."""
    return sorted(releases, key=lambda release: score_release(release, preference), reverse=True)


def select_best(releases: Sequence[Release], preference: str) -> Optional[Release]:
    if not releases:
        return None
    return rank_releases(releases, preference)[0]


def select_by_id(releases: Sequence[Release], release_id: str) -> Optional[Release]:
    for release in releases:
        if release.id == release_id:
            return release
    return None
