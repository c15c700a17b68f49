"""Application configuration model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from lightguide.utils.persistence import PydanticPersistence

from .layout import LayoutState

DEFAULT_CONFIG_DIR = Path.home() / ".lightguide"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"


class AppConfig(BaseModel):
    """Application configuration and settings.

    Timing values are milliseconds unless noted otherwise.
    """

    # MIDI port names
    instrument_input_port: str | None = Field(
        default="LinnStrument MIDI", description="Port the performer plays on"
    )
    instrument_output_port: str | None = Field(
        default="LinnStrument MIDI",
        description="Port used for pad highlighting and layout queries",
    )
    guide_input_port: str | None = Field(
        default="Loop Back C", description="Port that carries the guide notes"
    )
    forward_port_1: str | None = Field(
        default="Loop Forward A", description="Optional port that receives the played notes"
    )
    forward_port_2: str | None = Field(
        default="Loop Forward B", description="Second optional forward port"
    )
    midi_poll_interval: float = Field(
        default=2.0, description="How often to check for MIDI device changes (seconds)"
    )

    # Highlighting
    guide_highlight_color: int = Field(default=3, ge=0, le=127)
    highlight_channel: int = Field(
        default=0, ge=0, le=15, description="MIDI channel (0-based) for highlight CCs"
    )
    fade_out_delay: float = Field(
        default=200, ge=0, description="How long a highlight stays after note off"
    )

    # Grid geometry
    device_width: int = Field(default=128, description="Instrument size (128 or 200)")
    start_note_number: int = Field(default=30, ge=0, le=127)
    row_interval: int = Field(default=5, description="Half steps between rows")
    column_interval: int = Field(default=1, description="Half steps between columns")

    # Timing classification
    delayed_threshold: float = Field(
        default=100, gt=0, description="Offsets up to this are considered in time"
    )
    missed_threshold: float = Field(
        default=500, gt=0, description="Offsets beyond this are considered missed"
    )
    guide_statistics: bool = Field(default=True, description="Judge guide note timing")
    guide_pressure_encoding: bool = Field(
        default=False, description="Guide input sends poly pressure instead of note on/off"
    )
    guide_pressure_note_offset: int = Field(default=21, description="Note offset for pressure input")

    # Statistics session
    playing_break_threshold: float = Field(
        default=3000, gt=0, description="Pause after which statistics are printed and reset"
    )
    stats_check_interval: float = Field(default=500, gt=0)

    # Layout sync
    layout_sync: bool = Field(default=True, description="Poll the instrument for layout changes")
    update_state_interval: float = Field(
        default=200, gt=0, description="Minimum interval between layout queries"
    )
    sync_failure_penalty: float = Field(
        default=3000, ge=0, description="Extra delay before retrying a failed layout query"
    )
    param_timeout: float = Field(default=300, gt=0, description="Parameter query timeout")
    nrpn_channel: int = Field(default=0, ge=0, le=15, description="MIDI channel for NRPN queries")

    @field_validator("device_width")
    @classmethod
    def validate_device_width(cls, v: int) -> int:
        """Width must describe whole columns of 8 rows."""
        if v < 8 or v % 8 != 0:
            raise ValueError("device_width must be a positive multiple of 8 (e.g. 128 or 200)")
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "AppConfig":
        """The in-time window must lie inside the matching window."""
        if self.delayed_threshold > self.missed_threshold:
            raise ValueError("delayed_threshold must not exceed missed_threshold")
        return self

    def initial_layout(self) -> LayoutState:
        """Layout to use before the instrument has been queried."""
        return LayoutState(
            start_note_number=self.start_note_number,
            row_interval=self.row_interval,
            column_interval=self.column_interval,
            device_width=self.device_width,
        )

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses ~/.lightguide/config.json.

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        return PydanticPersistence.load_json_or_default(path or DEFAULT_CONFIG_PATH, cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file."""
        PydanticPersistence.save_json(self, path or DEFAULT_CONFIG_PATH)
