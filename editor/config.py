"""
Editor Configuration

Frozen configuration for an editing session and its transport.
Changes require a new config instance.

ENVIRONMENT:
============
    EDITOR_API_URL           base URL of the abstracts API
    EDITOR_TIMEOUT           request timeout in seconds
    EDITOR_LOG_LEVEL         DEBUG / INFO / WARNING / ERROR
    EDITOR_NULL_OVERWRITES   "true" makes null record values overwrite defaults
    EDITOR_TEXT_LIMIT        maximum characters of the abstract text
    EDITOR_ACK_LIMIT         maximum characters of the acknowledgements
    EDITOR_FIGURE_MAX_BYTES  maximum figure upload size
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
import os

DEFAULT_API_URL = "http://localhost:9000/api"
FIGURE_EXTENSIONS = ("jpeg", "jpg", "gif", "giff", "png")


@dataclass(frozen=True)
class EditorConfig:
    """Session, validation and transport settings."""
    api_base_url: str = DEFAULT_API_URL
    timeout_seconds: float = 30.0
    user_agent: str = "AbstractEditor/1.0"
    log_level: str = "INFO"
    
    # Marshalling policy
    null_overwrites: bool = False
    
    # Content limits
    text_character_limit: int = 2000
    ack_character_limit: int = 200
    figure_max_bytes: int = 5 * 1024 * 1024
    figure_extensions: Tuple[str, ...] = field(default=FIGURE_EXTENSIONS)
    
    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.text_character_limit <= 0 or self.ack_character_limit <= 0:
            raise ValueError("character limits must be positive")
        if self.figure_max_bytes <= 0:
            raise ValueError("figure_max_bytes must be positive")
    
    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> EditorConfig:
        """Build a config from ``EDITOR_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = EditorConfig()
        
        return EditorConfig(
            api_base_url=env.get("EDITOR_API_URL", defaults.api_base_url),
            timeout_seconds=float(env.get("EDITOR_TIMEOUT", defaults.timeout_seconds)),
            log_level=env.get("EDITOR_LOG_LEVEL", defaults.log_level).upper(),
            null_overwrites=env.get("EDITOR_NULL_OVERWRITES", "false").lower() == "true",
            text_character_limit=int(env.get("EDITOR_TEXT_LIMIT", defaults.text_character_limit)),
            ack_character_limit=int(env.get("EDITOR_ACK_LIMIT", defaults.ack_character_limit)),
            figure_max_bytes=int(env.get("EDITOR_FIGURE_MAX_BYTES", defaults.figure_max_bytes)),
        )
