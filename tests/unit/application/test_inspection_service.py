"""
Unit tests for the source inspection service.
"""

import pytest

from hlsbridge.application.inspection_service import SourceInspectionService
from hlsbridge.domain.errors import InvalidInputError, ProbeError
from tests.fixtures.fakes import FakeProber, make_descriptor, probe_error


class TestSourceInspectionService:
    def test_inspect_returns_descriptor_dict(self, sample_url):
        prober = FakeProber(make_descriptor(languages=(None, None)))

        info = SourceInspectionService(prober).inspect(sample_url)

        assert prober.calls == [sample_url]
        assert info["resolution"] == "1920x1080"
        assert [track["slug"] for track in info["audio_tracks"]] == ["und", "und_1"]
        assert info["subtitle_streams"] == []

    def test_invalid_url_is_not_probed(self):
        prober = FakeProber()

        with pytest.raises(InvalidInputError):
            SourceInspectionService(prober).inspect("not a url")

        assert prober.calls == []

    def test_inspection_failure_propagates(self, sample_url):
        service = SourceInspectionService(FakeProber(error=probe_error()))

        with pytest.raises(ProbeError):
            service.inspect(sample_url)
