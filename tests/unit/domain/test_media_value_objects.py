"""
Unit tests for media value objects and formatting helpers.
"""

import pytest

from hlsbridge.domain.errors import InvalidInputError
from hlsbridge.domain.media.value_objects import (
    AudioStreamInfo,
    AudioTrack,
    FetchProgress,
    MediaDescriptor,
    SourceUrl,
    VideoStreamInfo,
    format_eta,
    format_speed,
    language_slug,
)


class TestSourceUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://cdn.example.com/movie.mkv",
            "http://10.0.0.5:8080/files/video.mp4?token=abc",
        ],
    )
    def test_accepts_http_urls(self, url):
        assert str(SourceUrl(url)) == url

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "ftp://example.com/movie.mkv",
            "file:///etc/passwd",
            "https://",
            "https://example.com/my movie.mkv",
        ],
    )
    def test_rejects_invalid_urls(self, url):
        with pytest.raises(InvalidInputError):
            SourceUrl(url)


class TestFormatting:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "0 B/s"),
            (0, "0 B/s"),
            (500, "500 B/s"),
            (1536, "1.5 KB/s"),
            (5 * 1024 * 1024, "5 MB/s"),
        ],
    )
    def test_format_speed(self, value, expected):
        assert format_speed(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "--"),
            (0, "--"),
            (float("inf"), "--"),
            (42, "42s"),
            (59.6, "1m"),
            (180, "3m"),
            (3599, "1h 0m"),
            (3900, "1h 5m"),
        ],
    )
    def test_format_eta(self, value, expected):
        assert format_eta(value) == expected

    def test_complete_fetch_reports_complete(self):
        progress = FetchProgress(fraction_done=1.0, eta_seconds=10)

        assert progress.eta_label == "Complete"
        assert progress.percent == 100.0


class TestAudioTracks:
    def test_slug_replaces_non_alphanumerics(self):
        assert language_slug("pt-BR") == "pt_BR"
        assert language_slug("zh-Hant-TW") == "zh_Hant_TW"
        assert AudioTrack(index=0, language="pt-BR").playlist_name == "audio_pt_BR.m3u8"

    def test_track_defaults(self):
        track = AudioTrack(index=2, language="")

        assert track.language == "und"
        assert track.name == "Audio 3"
        assert track.task_name == "audio_und"

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            AudioTrack(index=-1)

    def test_tracks_follow_source_order_with_first_default(self):
        descriptor = MediaDescriptor(
            duration_seconds=60,
            video_streams=(VideoStreamInfo(index=0, codec="h264"),),
            audio_streams=(
                AudioStreamInfo(index=0, codec="aac", language="ja", title="Japanese"),
                AudioStreamInfo(index=1, codec="aac", language="en"),
            ),
        )

        tracks = descriptor.audio_tracks()

        assert [t.language for t in tracks] == ["ja", "en"]
        assert [t.is_default for t in tracks] == [True, False]
        assert [t.name for t in tracks] == ["Japanese", "Audio 2"]

    def test_repeated_languages_get_distinct_slugs(self):
        descriptor = MediaDescriptor(
            duration_seconds=60,
            audio_streams=(
                AudioStreamInfo(index=0, codec="aac", language="und"),
                AudioStreamInfo(index=1, codec="aac", language="und"),
            ),
        )

        slugs = [t.slug for t in descriptor.audio_tracks()]

        assert slugs == ["und", "und_1"]

    def test_track_serialization(self):
        track = AudioTrack(index=1, language="pt-BR", name="Português")

        assert AudioTrack.from_dict(track.to_dict()) == track

    def test_descriptor_resolution(self):
        descriptor = MediaDescriptor(
            duration_seconds=1,
            video_streams=(VideoStreamInfo(index=0, codec="h264", width=1280, height=720),),
        )

        assert descriptor.resolution == "1280x720"
        assert MediaDescriptor(duration_seconds=1).primary_video is None

    def test_descriptor_to_dict(self):
        descriptor = MediaDescriptor(
            duration_seconds=12.5,
            video_streams=(VideoStreamInfo(index=0, codec="h264", width=640, height=360),),
            audio_streams=(AudioStreamInfo(index=0, codec="aac", language="de", channels=2),),
        )

        data = descriptor.to_dict()

        assert data["duration"] == 12.5
        assert data["resolution"] == "640x360"
        assert data["video_streams"][0]["width"] == 640
        assert data["audio_streams"][0]["channels"] == 2
        assert data["audio_tracks"] == [descriptor.audio_tracks()[0].to_dict()]
