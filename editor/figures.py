"""
Figure Uploads

Local checks for figure files. Unsupported types and oversize
payloads are rejected here, before any request is made.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import mimetypes

from .config import EditorConfig
from .contracts.base import Error, ErrorCode


@dataclass(frozen=True)
class FigureUpload:
    """A figure file waiting to be attached to an abstract."""
    filename: str
    payload: bytes
    caption: Optional[str] = None
    content_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else ""

    @property
    def size(self) -> int:
        return len(self.payload)

    @staticmethod
    def from_path(path: Union[str, Path], caption: Optional[str] = None) -> FigureUpload:
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return FigureUpload(
            filename=path.name,
            payload=path.read_bytes(),
            caption=caption,
            content_type=content_type or "application/octet-stream"
        )


def check_figure(upload: FigureUpload, config: Optional[EditorConfig] = None) -> Optional[Error]:
    """Return the reason ``upload`` cannot be sent, or None if it can."""
    config = config or EditorConfig()

    if upload.extension not in config.figure_extensions:
        return Error.create(
            ErrorCode.UNSUPPORTED_FIGURE_TYPE,
            "Figure file format not supported (only jpeg, gif or png is allowed).",
            filename=upload.filename
        )

    if upload.size > config.figure_max_bytes:
        limit_mb, remainder = divmod(config.figure_max_bytes, 1024 * 1024)
        limit = f"{limit_mb}MB" if limit_mb and not remainder else f"{config.figure_max_bytes} bytes"
        return Error.create(
            ErrorCode.FIGURE_TOO_LARGE,
            f"Figure file is too large (limit is {limit}).",
            filename=upload.filename,
            size=upload.size
        )

    return None
