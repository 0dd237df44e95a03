# =============================================================================
# session.py
# Presentation-side state machine: Idle -> Loading -> {Ready, Failed}.
# =============================================================================

import logging
from enum import Enum
from typing import Callable, Optional

from analysis import DecodeError
from constants import ANALYSIS_FAILED_MSG
from models import AnalysisResult

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE    = "idle"
    LOADING = "loading"
    READY   = "ready"
    FAILED  = "failed"


class InvalidTransition(RuntimeError):
    pass


class AnalysisSession:
    """
    Holds the two selected images and the outcome of the last run.
    Selecting a new image discards any previous result or error.
    """

    SLOTS = (1, 2)

    def __init__(self):
        self.state: SessionState = SessionState.IDLE
        self._images: dict = {}
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[str] = None

    def image(self, slot: int):
        return self._images.get(slot)

    def set_image(self, slot: int, source) -> None:
        if slot not in self.SLOTS:
            raise ValueError(f"Unknown image slot: {slot}")
        if self.state is SessionState.LOADING:
            raise InvalidTransition("Cannot change images while an analysis is running.")
        self._images[slot] = source
        self.result = None
        self.error  = None
        self.state  = SessionState.IDLE

    @property
    def can_analyze(self) -> bool:
        return (self.state is not SessionState.LOADING
                and all(self._images.get(s) is not None for s in self.SLOTS))

    def begin(self) -> None:
        if not self.can_analyze:
            raise InvalidTransition(f"Cannot start analysis from {self.state.value}.")
        self.result = None
        self.error  = None
        self.state  = SessionState.LOADING

    def succeed(self, result: AnalysisResult) -> None:
        self._require_loading()
        self.result = result
        self.state  = SessionState.READY

    def fail(self, message: str) -> None:
        self._require_loading()
        self.error = message
        self.state = SessionState.FAILED

    def _require_loading(self):
        if self.state is not SessionState.LOADING:
            raise InvalidTransition(f"No analysis in progress (state: {self.state.value}).")

    def run(self, analyzer: Callable) -> SessionState:
        """begin(), then execute()."""
        self.begin()
        return self.execute(analyzer)

    def execute(self, analyzer: Callable) -> SessionState:
        """
        Call analyzer(image1, image2) for the analysis already begun, then
        succeed() or fail(). Unexpected errors fail the session and propagate.
        """
        self._require_loading()
        try:
            result = analyzer(self._images[1], self._images[2])
        except DecodeError as e:
            logger.warning("Analysis failed: %s", e)
            self.fail(ANALYSIS_FAILED_MSG)
        except Exception as e:
            self.fail(f"Unexpected error: {e}")
            raise
        else:
            self.succeed(result)
        return self.state
