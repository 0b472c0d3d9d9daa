import pytest

from services.releases import (
    GIB,
    Release,
    ReleaseFeedError,
    parse_release_feed,
    parse_release_title,
    rank_releases,
    score_release,
    select_best,
    select_by_id,
)


SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:newznab="http://www.newznab.com/DTD/2010/feeds/attributes/">
  <channel>
    <title>NZBgeek</title>
    <item>
      <title>The.Matrix.1999.1080p.BluRay.x265-GROUPA</title>
      <guid isPermaLink="true">https://nzbgeek.info/geekseek.php?guid=aaa111</guid>
      <link>https://api.nzbgeek.info/api?t=get&amp;id=aaa111</link>
      <enclosure url="https://api.nzbgeek.info/api?t=get&amp;id=aaa111&amp;apikey=k" length="5368709120" type="application/x-nzb"/>
    </item>
    <item>
      <title>The.Matrix.1999.720p.WEB-DL.x264-GRP2</title>
      <guid isPermaLink="true">https://nzbgeek.info/geekseek.php?guid=bbb222</guid>
      <link>https://api.nzbgeek.info/api?t=get&amp;id=bbb222</link>
      <size>2147483648</size>
    </item>
    <item>
      <title>Orphan.Release.Without.Guid.1080p</title>
      <link>https://api.nzbgeek.info/api?t=get&amp;id=orphan</link>
    </item>
    <item>
      <title>The.Matrix.1999.2160p.UHD.BluRay.HEVC-TERMiNAL</title>
      <guid>https://nzbgeek.info/geekseek.php?guid=ccc333</guid>
      <link>https://api.nzbgeek.info/api?t=get&amp;id=ccc333</link>
      <newznab:attr name="size" value="64424509440"/>
    </item>
  </channel>
</rss>
"""


def _release(release_id="r", quality=None, source=None, codec=None, size=0, title="Release"):
    return Release(
        id=release_id,
        title=title,
        size=size,
        download_url=f"https://example.test/{release_id}.nzb",
        quality=quality,
        source=source,
        codec=codec,
    )


def test_parse_release_title_detects_scene_tokens():
    meta = parse_release_title("The.Matrix.1999.2160p.UHD.BluRay.x265-TERMiNAL")
    assert meta.quality == "4K"
    assert meta.resolution == "3840x2160"
    assert meta.codec == "x265"
    assert meta.source == "BluRay"
    assert meta.group == "TERMiNAL"


def test_parse_release_title_is_case_insensitive():
    meta = parse_release_title("the.matrix.1999.720p.webrip.h264-grp")
    assert meta.quality == "720p"
    assert meta.resolution == "1280x720"
    assert meta.source == "WEBRip"
    assert meta.codec == "x264"
    assert meta.group == "grp"


def test_parse_release_title_cam_capture_without_group():
    meta = parse_release_title("New Movie 2024 HDCAM XviD")
    assert meta.source == "CAM"
    assert meta.codec == "XviD"
    assert meta.quality is None
    assert meta.group is None


def test_parse_release_title_first_matching_source_wins():
    meta = parse_release_title("Movie.2020.1080p.BDRip.WEB-DL.x264-MIX")
    assert meta.source == "BluRay"


def test_parse_release_feed_extracts_items_and_drops_incomplete():
    releases = parse_release_feed(SAMPLE_FEED)

    assert [release.id for release in releases] == [
        "https://nzbgeek.info/geekseek.php?guid=aaa111",
        "https://nzbgeek.info/geekseek.php?guid=bbb222",
        "https://nzbgeek.info/geekseek.php?guid=ccc333",
    ]
    first, second, third = releases
    assert first.size == 5 * GIB
    assert first.download_url == "https://api.nzbgeek.info/api?t=get&id=aaa111&apikey=k"
    assert first.quality == "1080p"
    assert first.group == "GROUPA"

    assert second.size == 2 * GIB
    assert second.download_url == "https://api.nzbgeek.info/api?t=get&id=bbb222"
    assert second.source == "WEB-DL"

    assert third.size == 60 * GIB
    assert third.quality == "4K"
    assert third.codec == "x265"


def test_parse_release_feed_empty_and_invalid_documents():
    assert parse_release_feed("") == []
    assert parse_release_feed("<rss><channel></channel></rss>") == []
    with pytest.raises(ReleaseFeedError):
        parse_release_feed("<rss><channel><item>")


def test_select_best_prefers_matching_quality_bluray():
    bluray = _release("a", quality="1080p", source="BluRay", codec="x265", size=5 * GIB)
    webdl = _release("b", quality="720p", source="WEB-DL", codec="x264", size=2 * GIB)

    assert score_release(bluray, "1080p") == 140
    assert score_release(webdl, "1080p") == 93
    assert select_best([webdl, bluray], "1080p") is bluray
    assert select_best([webdl, bluray], "1080p") is select_best([webdl, bluray], "1080p")


def test_size_penalty_boundaries_use_binary_units():
    base = dict(quality="1080p", source="BluRay", codec="x265")
    assert score_release(_release(size=10 * GIB, **base), "1080p") == 140
    assert score_release(_release(size=10 * GIB + 1, **base), "1080p") == 125
    assert score_release(_release(size=20 * GIB, **base), "1080p") == 125
    assert score_release(_release(size=20 * GIB + 1, **base), "1080p") == 110


def test_four_k_scores_low_unless_requested():
    uhd = _release(quality="4K", source="BluRay", codec="x265", size=8 * GIB)
    assert score_release(uhd, "1080p") == 90
    assert score_release(uhd, "4K") == 140


def test_cam_release_never_outranks_same_quality_good_source():
    cam = _release("cam", quality="1080p", source="CAM", codec="x265", size=1 * GIB)
    hdts = _release("ts", quality="1080p", source="HDTS", codec="x265", size=1 * GIB)
    webdl = _release("web", quality="1080p", source="WEB-DL", codec=None, size=25 * GIB)

    ranked = rank_releases([cam, hdts, webdl], "1080p")
    assert ranked[0] is webdl


def test_ranking_ties_keep_original_order():
    first = _release("first", quality="1080p", source="WEB-DL", codec="x264")
    second = _release("second", quality="1080p", source="WEB-DL", codec="x264")

    assert [r.id for r in rank_releases([first, second], "1080p")] == ["first", "second"]
    assert [r.id for r in rank_releases([second, first], "1080p")] == ["second", "first"]


def test_select_helpers_on_empty_and_by_id():
    assert select_best([], "1080p") is None
    releases = [_release("a"), _release("b")]
    assert select_by_id(releases, "b") is releases[1]
    assert select_by_id(releases, "missing") is None
