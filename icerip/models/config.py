"""
Pydantic model for application configuration.
Provides validation for the flat settings record a recording session consumes.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_MAX_BUFFER_BYTES = 10 * 2_000_000  # stop buffering a track past ~20 MB
MIN_MAX_BUFFER_BYTES = 64 * 1024


class RecorderConfig(BaseModel):
    """A validated configuration record for one recording session."""

    # Session settings
    max_reconnect_attempts: int = 5
    filter_text: str = ""
    save_path: str = ""
    stream_url: str = ""

    # Capture and file options
    max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES
    file_extension: str = "mp3"
    tag_files: bool = False

    # Internal field not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True

    @field_validator("max_reconnect_attempts")
    @classmethod
    def validate_reconnects(cls, v: int) -> int:
        """Ensures a non-negative, bounded reconnect ceiling."""
        if v < 0 or v > 1000:
            raise ValueError("Max reconnect attempts must be between 0 and 1000.")
        return v

    @field_validator("max_buffer_bytes")
    @classmethod
    def validate_buffer(cls, v: int) -> int:
        if v < MIN_MAX_BUFFER_BYTES:
            raise ValueError(
                f"Max buffer size must be at least {MIN_MAX_BUFFER_BYTES} bytes."
            )
        return v

    @field_validator("file_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalizes '.MP3' to 'mp3' and rejects anything that is not alphanumeric."""
        ext = v.strip().lstrip(".").lower()
        if not ext or not ext.isalnum():
            raise ValueError(f"File extension must be alphanumeric, but got: {v!r}")
        return ext

    @field_validator("save_path", "stream_url")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return v.strip()

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
