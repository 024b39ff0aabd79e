import logging
from typing import Optional

from pydantic import ValidationError

from models import DailyAnalysis

logger = logging.getLogger(__name__)

NEUTRAL_MOOD = "😐"


def fallback_analysis(day: str) -> DailyAnalysis:
    """Neutral analysis used when the analyzer cannot be reached."""
    return DailyAnalysis(
        date=day,
        productivity_score=50,
        insights=["Could not reach the analysis service."],
        suggestions=["Check your connection and try the analysis again."],
        mood_emoji=NEUTRAL_MOOD,
        chart_data=[],
    )


class AnalysisCache:
    """
    Holds at most one DailyAnalysis, implicitly keyed by its date.
    Discarded on every day change; replaced wholesale on every analysis run.
    """

    def __init__(self):
        self._analysis: Optional[DailyAnalysis] = None

    @property
    def current(self) -> Optional[DailyAnalysis]:
        return self._analysis

    def get(self, selected_day: str) -> Optional[DailyAnalysis]:
        if self._analysis is not None and self._analysis.date == selected_day:
            return self._analysis
        return None

    def discard(self) -> None:
        self._analysis = None

    def replace(self, analysis: DailyAnalysis) -> None:
        self._analysis = analysis

    def rehydrate(self, persisted, selected_day: str) -> Optional[DailyAnalysis]:
        """Restore a stored analysis only if it belongs to the selected day."""
        self._analysis = None
        if persisted is None:
            return None
        try:
            analysis = DailyAnalysis.model_validate(persisted)
        except ValidationError as e:
            logger.warning("Ignoring malformed stored analysis: %s", e)
            return None
        if analysis.date != selected_day:
            return None
        self._analysis = analysis
        return analysis
