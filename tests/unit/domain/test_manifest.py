"""
Unit tests for master manifest rendering and writing.
"""

from pathlib import Path

from hlsbridge.domain.media.manifest import (
    MASTER_PLAYLIST,
    render_master_manifest,
    write_master_manifest,
)
from hlsbridge.domain.media.value_objects import AudioTrack


def _tracks(*languages):
    return [
        AudioTrack(index=i, language=language, name=f"Track {i}", is_default=i == 0)
        for i, language in enumerate(languages)
    ]


class TestRenderMasterManifest:
    def test_exact_layout_for_two_tracks(self):
        text = render_master_manifest(
            "video.m3u8", _tracks("ja", "en"), resolution="1280x720", bandwidth=3_128_000
        )

        assert text == "\n".join(
            [
                "#EXTM3U",
                "#EXT-X-VERSION:7",
                "",
                '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="Track 0",LANGUAGE="ja",'
                'DEFAULT=YES,AUTOSELECT=YES,URI="audio_ja.m3u8"',
                '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="audio",NAME="Track 1",LANGUAGE="en",'
                'DEFAULT=NO,AUTOSELECT=YES,URI="audio_en.m3u8"',
                "",
                '#EXT-X-STREAM-INF:BANDWIDTH=3128000,RESOLUTION=1280x720,'
                'CODECS="avc1.640028,mp4a.40.2",AUDIO="audio"',
                "video.m3u8",
                "",
            ]
        )

    def test_rendering_is_deterministic(self):
        tracks = _tracks("en", "fr", "de")

        assert render_master_manifest("video.m3u8", tracks) == render_master_manifest(
            "video.m3u8", list(tracks)
        )

    def test_exactly_one_default_track(self):
        tracks = [
            AudioTrack(index=0, language="en", is_default=False),
            AudioTrack(index=1, language="fr", is_default=True),
            AudioTrack(index=2, language="de", is_default=True),
        ]

        text = render_master_manifest("video.m3u8", tracks)

        assert text.count("DEFAULT=YES") == 1
        assert 'DEFAULT=YES,AUTOSELECT=YES,URI="audio_fr.m3u8"' in text

    def test_first_track_is_default_when_none_flagged(self):
        tracks = [AudioTrack(index=0, language="en"), AudioTrack(index=1, language="fr")]

        text = render_master_manifest("video.m3u8", tracks)

        assert 'LANGUAGE="en",DEFAULT=YES' in text

    def test_language_tag_kept_while_uri_uses_slug(self):
        text = render_master_manifest("video.m3u8", _tracks("pt-BR"))

        assert 'LANGUAGE="pt-BR"' in text
        assert 'URI="audio_pt_BR.m3u8"' in text

    def test_no_audio_group_without_tracks(self):
        text = render_master_manifest("video.m3u8", [])

        assert "EXT-X-MEDIA" not in text
        assert "AUDIO=" not in text
        assert text.splitlines()[-1] == "video.m3u8"

    def test_quotes_in_track_names_are_neutralized(self):
        tracks = [AudioTrack(index=0, language="en", name='Director "cut"\ncommentary')]

        text = render_master_manifest("video.m3u8", tracks)

        assert "NAME=\"Director 'cut' commentary\"" in text


class TestWriteMasterManifest:
    def test_writes_file_and_leaves_no_temp_files(self, tmp_path: Path):
        path = write_master_manifest(tmp_path, "#EXTM3U\n")

        assert path == tmp_path / MASTER_PLAYLIST
        assert path.read_text() == "#EXTM3U\n"
        assert [p.name for p in tmp_path.iterdir()] == [MASTER_PLAYLIST]

    def test_replaces_existing_manifest(self, tmp_path: Path):
        write_master_manifest(tmp_path, "old")
        write_master_manifest(tmp_path, "new")

        assert (tmp_path / MASTER_PLAYLIST).read_text() == "new"
