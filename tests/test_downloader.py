"""Unit tests for the yt-dlp wrappers and the format fallback loop."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
import requests

from ytsplit.downloader import (
    DownloadAttemptError,
    DownloadError,
    THUMBNAIL_RETRIES,
    FormatAttempt,
    ToolNotFoundError,
    check_dependencies,
    clean_url,
    default_format_attempts,
    download_audio,
    download_thumbnail,
    explain_ytdlp_error,
    extract_video_id,
    fetch_video_info,
    new_session,
    run_ytdlp,
    thumbnail_urls,
)

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


def _scripted_invoker(outcomes):
    """Invoker that fails with the given diagnostics, then succeeds.

    ``outcomes`` holds one entry per attempt: a string raises
    DownloadAttemptError with that text, None means success.
    """
    calls = []

    def invoke(url, output, selector, timeout):
        calls.append(selector)
        outcome = outcomes[len(calls) - 1]
        if outcome is not None:
            raise DownloadAttemptError(outcome)
        return output.with_suffix(".mp3")

    invoke.calls = calls
    return invoke


# ---------------------------------------------------------------------------
# Format fallback
# ---------------------------------------------------------------------------

class TestDefaultFormatAttempts:
    def test_four_attempts_last_without_selector(self):
        attempts = default_format_attempts()
        assert len(attempts) == 4
        assert [a.selector for a in attempts] == [
            "bestaudio[ext=m4a]/bestaudio",
            "140",
            "bestaudio",
            None,
        ]


class TestDownloadAudio:
    def test_first_attempt_succeeds(self, tmp_path):
        invoke = _scripted_invoker([None])
        result = download_audio(URL, tmp_path / "a.mp3", invoke=invoke)

        assert result.path == tmp_path / "a.mp3"
        assert result.attempt.selector == "bestaudio[ext=m4a]/bestaudio"
        assert result.failures == []
        assert invoke.calls == ["bestaudio[ext=m4a]/bestaudio"]

    def test_falls_back_to_auto_select(self, tmp_path):
        invoke = _scripted_invoker(["format not available", "no 140", "still no", None])
        result = download_audio(URL, tmp_path / "a.mp3", invoke=invoke)

        assert result.attempt.selector is None
        assert [f.ordinal for f in result.failures] == [1, 2, 3]
        assert result.failures[1].diagnostic == "no 140"
        assert invoke.calls[-1] is None

    def test_all_attempts_fail(self, tmp_path):
        invoke = _scripted_invoker(["e1", "e2", "e3", "ERROR: Requested format is not available"])
        with pytest.raises(DownloadError) as exc_info:
            download_audio(URL, tmp_path / "a.mp3", invoke=invoke)

        err = exc_info.value
        assert "Requested format is not available" in str(err)
        assert "all 4 format selectors" in str(err)
        assert len(err.failures) == 4
        assert len(invoke.calls) == 4

    def test_custom_attempts(self, tmp_path):
        attempts = (FormatAttempt("251", "opus"),)
        invoke = _scripted_invoker(["nope"])
        with pytest.raises(DownloadError, match="all 1 format selectors. Last error: nope"):
            download_audio(URL, tmp_path / "a.mp3", attempts=attempts, invoke=invoke)

    def test_timeout_is_passed_through(self, tmp_path):
        seen = []

        def invoke(url, output, selector, timeout):
            seen.append(timeout)
            return output

        download_audio(URL, tmp_path / "a.mp3", invoke=invoke, timeout=30.0)
        assert seen == [30.0]

    def test_unexpected_error_moves_to_next_attempt(self, tmp_path):
        calls = []

        def invoke(url, output, selector, timeout):
            calls.append(selector)
            if len(calls) == 1:
                raise OSError("disk full")
            if len(calls) == 2:
                raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
            return output

        result = download_audio(URL, tmp_path / "a.mp3", invoke=invoke)

        assert len(calls) == 3
        assert result.attempt.selector == "bestaudio"
        assert result.failures[0].diagnostic == "disk full"
        assert "invalid start byte" in result.failures[1].diagnostic

    def test_unexpected_errors_end_in_download_error(self, tmp_path):
        def invoke(url, output, selector, timeout):
            raise OSError("disk full")

        with pytest.raises(DownloadError, match="Last error: disk full") as exc_info:
            download_audio(URL, tmp_path / "a.mp3", invoke=invoke)
        assert len(exc_info.value.failures) == 4


# ---------------------------------------------------------------------------
# run_ytdlp (mocked subprocess)
# ---------------------------------------------------------------------------

class TestRunYtdlp:
    @patch("ytsplit.downloader.subprocess.run")
    def test_selector_adds_format_flag(self, mock_run, tmp_path):
        output = tmp_path / "temp_audio.mp3"
        output.write_bytes(b"ID3")
        mock_run.return_value = MagicMock(returncode=0, stderr="")

        assert run_ytdlp(URL, output, "140") == output

        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["yt-dlp", "-f", "140"]
        assert str(tmp_path / "temp_audio.%(ext)s") in cmd
        assert cmd[-1] == URL

    @patch("ytsplit.downloader.subprocess.run")
    def test_no_selector_omits_format_flag(self, mock_run, tmp_path):
        output = tmp_path / "temp_audio.mp3"
        output.write_bytes(b"ID3")
        mock_run.return_value = MagicMock(returncode=0, stderr="")

        run_ytdlp(URL, output, None)

        cmd = mock_run.call_args[0][0]
        assert "-f" not in cmd
        assert "-x" in cmd

    @patch("ytsplit.downloader.subprocess.run")
    def test_failure_carries_stderr(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=1, stderr="ERROR: Video unavailable\n")
        with pytest.raises(DownloadAttemptError) as exc_info:
            run_ytdlp(URL, tmp_path / "a.mp3", "bestaudio")
        assert exc_info.value.diagnostic == "ERROR: Video unavailable"

    @patch("ytsplit.downloader.subprocess.run")
    def test_output_is_decoded_leniently(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=1, stderr="ERROR: caf\ufffd not found\n")
        with pytest.raises(DownloadAttemptError, match="caf\ufffd"):
            run_ytdlp(URL, tmp_path / "a.mp3", "bestaudio")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["encoding"] == "utf-8"
        assert kwargs["errors"] == "replace"
        assert "text" not in kwargs

    @patch("ytsplit.downloader.subprocess.run")
    def test_timeout_is_an_attempt_failure(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="yt-dlp", timeout=5)
        with pytest.raises(DownloadAttemptError, match="timed out after 5s"):
            run_ytdlp(URL, tmp_path / "a.mp3", "bestaudio", timeout=5.0)
        assert mock_run.call_args.kwargs["timeout"] == 5.0

    @patch("ytsplit.downloader.subprocess.run")
    def test_zero_timeout_means_no_limit(self, mock_run, tmp_path):
        output = tmp_path / "a.mp3"
        output.write_bytes(b"ID3")
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        run_ytdlp(URL, output, "bestaudio", timeout=0.0)
        assert mock_run.call_args.kwargs["timeout"] is None

    @patch("ytsplit.downloader.subprocess.run")
    def test_missing_output_file(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stderr="")
        with pytest.raises(DownloadAttemptError, match="was not created"):
            run_ytdlp(URL, tmp_path / "a.mp3", "bestaudio")


# ---------------------------------------------------------------------------
# Video info
# ---------------------------------------------------------------------------

class TestFetchVideoInfo:
    @patch("ytsplit.downloader.subprocess.run")
    def test_parses_dump_json(self, mock_run, video_info_data):
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(video_info_data), stderr="")
        info = fetch_video_info(URL, timeout=60.0)

        assert info.title.startswith("Marigold - Oblivion Gate")
        assert info.duration == 500.0
        assert info.video_id == "dQw4w9WgXcQ"
        assert info.uploader == "Marigold Official"
        assert [c.title for c in info.chapters] == ["Intro", "Main Theme", "Outro"]
        assert "Tracklist" in info.description
        assert "--dump-json" in mock_run.call_args[0][0]

    @patch("ytsplit.downloader.subprocess.run")
    def test_missing_fields_have_defaults(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="{}", stderr="")
        info = fetch_video_info(URL)
        assert info.title == "Untitled Video"
        assert info.duration == 0.0
        assert info.chapters == []

    @patch("ytsplit.downloader.subprocess.run")
    def test_error_is_explained(self, mock_run):
        mock_run.return_value = MagicMock(
            returncode=1, stdout="", stderr="ERROR: [youtube] abc: Private video. Sign in"
        )
        with pytest.raises(DownloadError, match="requires authentication"):
            fetch_video_info(URL)

    @patch("ytsplit.downloader.subprocess.run")
    def test_output_is_decoded_leniently(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout='{"title": "Caf\ufffd Session"}', stderr="")
        assert fetch_video_info(URL).title == "Caf\ufffd Session"
        assert mock_run.call_args.kwargs["encoding"] == "utf-8"
        assert mock_run.call_args.kwargs["errors"] == "replace"

    @patch("ytsplit.downloader.subprocess.run")
    def test_bad_json(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="not json", stderr="")
        with pytest.raises(DownloadError, match="Could not parse"):
            fetch_video_info(URL)

    @patch("ytsplit.downloader.subprocess.run", side_effect=subprocess.TimeoutExpired("yt-dlp", 60))
    def test_timeout(self, mock_run):
        with pytest.raises(DownloadError, match="timed out"):
            fetch_video_info(URL, timeout=60.0)


class TestExplainYtdlpError:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ERROR: Join this channel to get access to members-only content", "authentication"),
            ("ERROR: Sign in to confirm your age. This video may be inappropriate", "authentication"),
            ("ERROR: This video is age-restricted", "age-restricted"),
            ("ERROR: This video is not available in your country", "geo-restricted"),
            ("ERROR: Video unavailable. This video has been removed", "no longer available"),
            ("ERROR: Unable to download webpage: HTTP Error 503", "Network error"),
            ("ERROR: Unsupported URL: https://example.com", "Invalid or unsupported URL"),
        ],
    )
    def test_known_categories(self, raw, expected):
        message, _ = explain_ytdlp_error(raw)
        assert expected in message

    def test_unknown_error_line(self):
        raw = "WARNING: something\nERROR: Something odd happened\n"
        assert explain_ytdlp_error(raw) == ("Something odd happened", None)

    def test_no_error_prefix(self):
        assert explain_ytdlp_error("first\nlast line\n") == ("last line", None)

    def test_empty(self):
        assert explain_ytdlp_error("") == ("yt-dlp failed with no output", None)


# ---------------------------------------------------------------------------
# URL helpers and dependency checks
# ---------------------------------------------------------------------------

class TestUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ&t=42",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        ],
    )
    def test_extract_video_id(self, url):
        assert extract_video_id(url) == "dQw4w9WgXcQ"

    def test_extract_video_id_not_youtube(self):
        assert extract_video_id("https://example.com/video") is None

    def test_clean_url_drops_playlist(self):
        url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PL123&index=4"
        assert clean_url(url) == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    def test_clean_url_leaves_short_links(self):
        assert clean_url("https://youtu.be/dQw4w9WgXcQ") == "https://youtu.be/dQw4w9WgXcQ"


class TestCheckDependencies:
    @patch("ytsplit.downloader.shutil.which", return_value="/usr/bin/tool")
    def test_all_present(self, mock_which):
        check_dependencies()

    @patch("ytsplit.downloader.shutil.which")
    def test_missing_tools_are_named(self, mock_which):
        mock_which.side_effect = lambda cmd: None if cmd in ("yt-dlp", "ffprobe") else "/usr/bin/ffmpeg"
        with pytest.raises(ToolNotFoundError, match="yt-dlp, ffprobe"):
            check_dependencies()


# ---------------------------------------------------------------------------
# Thumbnails (fake requests session)
# ---------------------------------------------------------------------------

def _response(status, content=b""):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    return resp


class TestThumbnails:
    def test_candidate_urls(self):
        urls = thumbnail_urls(URL, "https://i.ytimg.com/vi/dQw4w9WgXcQ/sddefault.jpg")
        assert urls[0] == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
        assert urls[-1] == "https://i.ytimg.com/vi/dQw4w9WgXcQ/sddefault.jpg"
        assert len(urls) == 4

    def test_falls_back_to_lower_quality(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = [_response(404), _response(200, b"JPEGDATA")]

        path = download_thumbnail(URL, tmp_path, session=session)

        assert path == tmp_path / "cover.jpg"
        assert path.read_bytes() == b"JPEGDATA"
        assert "hqdefault" in session.get.call_args_list[1][0][0]

    def test_connection_error_moves_to_next_quality(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = [
            requests.ConnectionError("reset"),
            _response(200, b"JPEGDATA"),
        ]
        path = download_thumbnail(URL, tmp_path, session=session)
        assert path.read_bytes() == b"JPEGDATA"
        assert session.get.call_count == 2
        assert "hqdefault" in session.get.call_args_list[1][0][0]

    def test_default_session_retries_transient_errors(self):
        session = new_session()
        for prefix in ("https://", "http://"):
            retries = session.get_adapter(prefix + "img.youtube.com").max_retries
            assert retries.total == THUMBNAIL_RETRIES
            assert retries.backoff_factor > 0
            assert 503 in retries.status_forcelist
            assert retries.raise_on_status is False

    @patch("ytsplit.downloader.new_session")
    def test_uses_default_session(self, mock_new_session, tmp_path):
        mock_new_session.return_value.get.return_value = _response(200, b"JPEGDATA")
        download_thumbnail(URL, tmp_path)
        mock_new_session.assert_called_once_with()

    def test_nothing_available(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(404)
        with pytest.raises(DownloadError, match="Could not download thumbnail"):
            download_thumbnail(URL, tmp_path, session=session)
        assert not (tmp_path / "cover.jpg").exists()
