"""Unit tests for the stream analyzer and ffprobe handling."""

import json
import subprocess
from unittest.mock import Mock, patch

import pytest

from hlsmux.core.analyzer import StreamAnalyzer
from hlsmux.exceptions import ProbeError
from hlsmux.models.stream import StreamType


class TestStreamAnalyzer:
    """Test StreamAnalyzer.inspect."""

    def test_buckets_streams_by_type(self, source_file, probe_output):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=probe_output)):
            inventory = StreamAnalyzer().inspect(source_file)

        assert [d.index for d in inventory.video] == [0]
        assert [d.index for d in inventory.audio] == [1, 2]
        assert [d.index for d in inventory.subtitle] == [3, 4]
        assert inventory.total == 5
        assert inventory.audio[1].stream_type == StreamType.AUDIO
        assert inventory.audio[1].codec == "ac3"
        assert inventory.audio[1].language == "jpn"

    def test_drops_non_media_streams(self, source_file, probe_output):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=probe_output)):
            inventory = StreamAnalyzer().inspect(source_file)

        all_indices = [d.index for d in inventory.video + inventory.audio + inventory.subtitle]
        assert 5 not in all_indices

    def test_missing_language_defaults_to_und(self, source_file, probe_output):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=probe_output)):
            inventory = StreamAnalyzer().inspect(source_file)

        assert inventory.video[0].language == "und"

    def test_keeps_container_indices(self, source_file):
        data = {
            "streams": [
                {"index": 0, "codec_type": "audio", "codec_name": "aac"},
                {"index": 1, "codec_type": "data", "codec_name": "bin_data"},
                {"index": 2, "codec_type": "video", "codec_name": "hevc"},
                {"index": 3, "codec_type": "audio", "codec_name": "dts"},
            ]
        }
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=json.dumps(data))):
            inventory = StreamAnalyzer().inspect(source_file)

        assert [d.index for d in inventory.video] == [2]
        assert [d.index for d in inventory.audio] == [0, 3]

    def test_reads_duration(self, source_file, probe_output):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=probe_output)):
            inventory = StreamAnalyzer().inspect(source_file)

        assert inventory.duration == pytest.approx(1425.36)

    def test_probes_exactly_once(self, source_file, probe_output):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout=probe_output)) as mock_run:
            StreamAnalyzer().inspect(source_file)

        assert mock_run.call_count == 1
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert "-show_streams" in cmd
        assert str(source_file) in cmd


class TestProbeFailures:
    """Test that every probe failure becomes a ProbeError."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProbeError, match="File not found"):
            StreamAnalyzer().inspect(tmp_path / "missing.mkv")

    def test_ffprobe_nonzero_exit(self, source_file):
        error = subprocess.CalledProcessError(1, "ffprobe", stderr="Invalid data found")
        with patch("subprocess.run", side_effect=error):
            with pytest.raises(ProbeError, match="status 1"):
                StreamAnalyzer().inspect(source_file)

    def test_ffprobe_timeout(self, source_file):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("ffprobe", 30)):
            with pytest.raises(ProbeError, match="timed out"):
                StreamAnalyzer().inspect(source_file)

    def test_ffprobe_not_installed(self, source_file):
        with patch("subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(ProbeError, match="not found"):
                StreamAnalyzer().inspect(source_file)

    def test_garbage_output(self, source_file):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout="not json")):
            with pytest.raises(ProbeError, match="Unparsable"):
                StreamAnalyzer().inspect(source_file)

    def test_output_without_streams(self, source_file):
        with patch("subprocess.run", return_value=Mock(returncode=0, stdout="{}")):
            with pytest.raises(ProbeError, match="no stream list"):
                StreamAnalyzer().inspect(source_file)
