import pytest

from conftest import make_scenes
from scenesync.models import Subtitle
from scenesync.services import adapt_subtitles, generate_srt, parse_srt
from scenesync.utils.timing import format_srt_timestamp, parse_srt_timestamp

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:04,500
Hello there.

2
00:00:05,250 --> 00:00:08,000
Two lines
of text.
"""


class TestTimestamps:
    def test_format(self):
        assert format_srt_timestamp(3725.4) == "01:02:05,400"
        assert format_srt_timestamp(0) == "00:00:00,000"

    def test_rounding_carries_into_seconds(self):
        assert format_srt_timestamp(59.9996) == "00:01:00,000"

    def test_parse(self):
        assert parse_srt_timestamp("01:02:05,400") == pytest.approx(3725.4)

    @pytest.mark.parametrize("value", ["1:02:05,400", "01:02:05.400", "01:02:05", ""])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_srt_timestamp(value)


class TestParseSrt:
    def test_parses_blocks(self):
        subtitles = parse_srt(SAMPLE_SRT)

        assert [s.id for s in subtitles] == [1, 2]
        assert subtitles[0].start_time == pytest.approx(1.0)
        assert subtitles[0].end_time == pytest.approx(4.5)
        assert subtitles[1].text == "Two lines\nof text."

    def test_crlf_line_endings(self):
        subtitles = parse_srt(SAMPLE_SRT.replace("\n", "\r\n"))

        assert len(subtitles) == 2
        assert subtitles[1].text == "Two lines\nof text."

    def test_skips_malformed_blocks(self):
        content = (
            "1\n00:00:01,000 --> 00:00:02,000\nGood\n\n"
            "x\n00:00:03,000 --> 00:00:04,000\nBad index\n\n"
            "3\nnot a timing line\nBad timing\n\n"
            "4\n00:00:05,000 --> 00:00:06,000\n\n"
            "5\n00:00:07,000 --> 00:00:08,000\nAlso good\n"
        )

        subtitles = parse_srt(content)

        assert [s.text for s in subtitles] == ["Good", "Also good"]

    def test_tolerates_bom_and_extra_blank_lines(self):
        content = "\ufeff\n\n" + SAMPLE_SRT.replace("\n\n2", "\n\n\n\n2")
        assert len(parse_srt(content)) == 2

    def test_empty_input(self):
        assert parse_srt("") == []
        assert parse_srt("\n\n  \n") == []


def test_generate_srt_renumbers():
    subtitles = [
        Subtitle(id=7, start_time=1.0, end_time=2.5, text="First"),
        Subtitle(id=9, start_time=3725.4, end_time=3726.0, text="Second"),
    ]

    assert generate_srt(subtitles) == (
        "1\n00:00:01,000 --> 00:00:02,500\nFirst\n"
        "\n"
        "2\n01:02:05,400 --> 01:02:06,000\nSecond\n"
    )


def test_generated_srt_parses_back():
    subtitles = parse_srt(SAMPLE_SRT)
    assert parse_srt(generate_srt(subtitles)) == subtitles


class TestAdaptSubtitles:
    def test_splits_subtitle_across_scenes(self):
        scenes = make_scenes(0, 10, 12)
        subtitles = [Subtitle(id=1, start_time=5.0, end_time=12.0, text="Long line")]

        adapted = adapt_subtitles(subtitles, scenes)

        assert [(s.id, s.start_time, s.end_time, s.text) for s in adapted] == [
            (1, 5.0, 10.0, "Long line"),
            (2, 10.0, 12.0, "Long line"),
        ]

    def test_drops_slivers(self):
        scenes = make_scenes(0, 10, 20)
        subtitles = [Subtitle(id=1, start_time=9.95, end_time=15.0, text="Late")]

        adapted = adapt_subtitles(subtitles, scenes)

        assert [(s.start_time, s.end_time) for s in adapted] == [(10.0, 15.0)]

    def test_no_output_crosses_a_boundary(self):
        scenes = make_scenes(0, 3, 7, 10)
        subtitles = parse_srt(SAMPLE_SRT)

        adapted = adapt_subtitles(subtitles, scenes)

        for subtitle in adapted:
            assert any(
                s.start_time <= subtitle.start_time and subtitle.end_time <= s.end_time
                for s in scenes.scenes
            )
            assert subtitle.end_time - subtitle.start_time > 0.1

    def test_output_is_scene_major(self):
        scenes = make_scenes(0, 5, 10)
        subtitles = [
            Subtitle(id=1, start_time=4.0, end_time=6.0, text="A"),
            Subtitle(id=2, start_time=3.0, end_time=7.0, text="B"),
        ]

        adapted = adapt_subtitles(subtitles, scenes)

        assert [s.text for s in adapted] == ["A", "B", "A", "B"]
        assert [s.id for s in adapted] == [1, 2, 3, 4]

    def test_custom_overlap_floor(self):
        scenes = make_scenes(0, 10, 20)
        subtitles = [Subtitle(id=1, start_time=9.5, end_time=15.0, text="Late")]

        assert len(adapt_subtitles(subtitles, scenes)) == 2
        assert len(adapt_subtitles(subtitles, scenes, min_overlap=1.0)) == 1
