"""Aggregated timing statistics for one practice take."""

from pydantic import BaseModel, ConfigDict, Field


class AggregatedStats(BaseModel):
    """Counts, ratios and score over a batch of timing results."""

    model_config = ConfigDict(frozen=True)

    notes_played: int = 0
    guide_notes: int = 0
    in_time_notes: int = 0
    early_notes: int = 0
    late_notes: int = 0
    missed_notes: int = 0
    accidental_notes: int = Field(
        default=0, description="Played notes with no attributable guide note"
    )
    avg_timing_offset: float = Field(default=0.0, description="Mean |offset| of matched notes (ms)")

    in_time_ratio: float = 0.0
    early_ratio: float = 0.0
    late_ratio: float = 0.0
    missed_ratio: float = 0.0
    accidental_ratio: float = 0.0

    score: float = Field(default=0.0, ge=0.0)

    def format_table(self) -> str:
        """Render the statistics as a plain-text table for the log."""
        rows = [
            ("Notes Played", self.notes_played, None),
            ("In Time Notes", self.in_time_notes, self.in_time_ratio),
            ("Early Notes", self.early_notes, self.early_ratio),
            ("Late Notes", self.late_notes, self.late_ratio),
            ("Missed Notes", self.missed_notes, self.missed_ratio),
            ("Accidental Notes", self.accidental_notes, self.accidental_ratio),
        ]
        lines = [
            f"Score: {self.score:.0f}/1000 | Avg. Offset: {self.avg_timing_offset:.0f}ms",
            f"{'':<18}{'# Notes':>8}{'Ratio':>8}",
        ]
        for label, count, ratio in rows:
            ratio_text = "" if ratio is None else f"{round(ratio * 100)}%"
            lines.append(f"{label:<18}{count:>8}{ratio_text:>8}")
        return "\n".join(lines)
