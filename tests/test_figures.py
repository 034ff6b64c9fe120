"""
Figure Upload Check Tests
"""

import pytest

from editor.config import EditorConfig
from editor.contracts.base import ErrorCode
from editor.figures import FigureUpload, check_figure


class TestFigureUpload:

    def test_extension_is_lower_case(self):
        assert FigureUpload("Plot.PNG", b"").extension == "png"
        assert FigureUpload("noextension", b"").extension == ""

    def test_from_path(self, tmp_path):
        path = tmp_path / "figure.png"
        path.write_bytes(b"\x89PNG data")

        upload = FigureUpload.from_path(path, caption="Caption")

        assert upload.filename == "figure.png"
        assert upload.size == 9
        assert upload.caption == "Caption"
        assert upload.content_type == "image/png"


class TestCheckFigure:

    @pytest.mark.parametrize("name", ["a.jpeg", "a.jpg", "a.gif", "a.giff", "a.png", "A.JPG"])
    def test_supported_types(self, name):
        assert check_figure(FigureUpload(name, b"data")) is None

    @pytest.mark.parametrize("name", ["a.bmp", "a.tiff", "a.pdf", "png"])
    def test_unsupported_types(self, name):
        error = check_figure(FigureUpload(name, b"data"))

        assert error.code == ErrorCode.UNSUPPORTED_FIGURE_TYPE
        assert error.message == "Figure file format not supported (only jpeg, gif or png is allowed)."

    def test_default_limit_is_five_megabytes(self):
        at_limit = FigureUpload("a.png", b"\x00" * (5 * 1024 * 1024))
        over = FigureUpload("a.png", b"\x00" * (5 * 1024 * 1024 + 1))

        assert check_figure(at_limit) is None
        error = check_figure(over)
        assert error.code == ErrorCode.FIGURE_TOO_LARGE
        assert error.message == "Figure file is too large (limit is 5MB)."

    def test_configured_limit(self):
        error = check_figure(FigureUpload("a.png", b"12345"), EditorConfig(figure_max_bytes=4))

        assert error.message == "Figure file is too large (limit is 4 bytes)."
        assert ("size", "5") in error.context
