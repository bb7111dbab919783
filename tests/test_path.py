import pytest

from srdl.exceptions import OutputNotFoundError
from srdl.utils.formatting import format_duration, format_size, slug
from srdl.utils.path import locate_download, parse_run_id, sanitize_stem


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.speedrun.com/sms/run/y8dwozoj", "y8dwozoj"),
        ("https://www.speedrun.com/sms/run/y8dwozoj/", "y8dwozoj"),
        ("https://www.speedrun.com/sms/run/y8dwozoj?h=abc#top", "y8dwozoj"),
        ("y8dwozoj", "y8dwozoj"),
        ("  y8dwozoj  ", "y8dwozoj"),
        ("", None),
        ("https://www.speedrun.com/sms/run/bad%20id", None),
    ],
)
def test_parse_run_id(url, expected):
    assert parse_run_id(url) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Any%", "any"),
        ("120 Shines", "120shines"),
        ("Glitchless (No SSU)", "glitchlessnossu"),
        ("Ñandú", "and"),
    ],
)
def test_slug(text, expected):
    assert slug(text) == expected


def test_sanitize_stem_replaces_reserved_characters():
    assert "/" not in sanitize_stem("a/b:c")


class TestLocateDownload:
    def test_bare_path(self, tmp_path):
        base = tmp_path / "dl-run"
        base.write_bytes(b"x")
        assert locate_download(base) == base

    @pytest.mark.parametrize("ext", ["mkv", "mp4", "webm"])
    def test_known_extensions(self, tmp_path, ext):
        target = tmp_path / f"dl-run.{ext}"
        target.write_bytes(b"x")
        assert locate_download(tmp_path / "dl-run") == target

    def test_missing_file(self, tmp_path):
        with pytest.raises(OutputNotFoundError):
            locate_download(tmp_path / "dl-run")


class TestFormatting:
    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 B"), (512, "512.0 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB")],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected

    @pytest.mark.parametrize(
        "seconds, expected", [(0, "0s"), (59.9, "59s"), (61, "1m 1s"), (3600, "1h")]
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
