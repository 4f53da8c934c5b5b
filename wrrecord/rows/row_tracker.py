import logging

from wrrecord.rows.row_signals import (
    RowSignal,
    HardwareDetected,
    StrokeStarted,
    WorkoutCompleted,
    SessionState,
)

logger = logging.getLogger(__name__)

# (current state, signal) -> next state. Any pair not listed leaves the state unchanged.
TRANSITIONS: dict[tuple[SessionState, type[RowSignal]], SessionState] = {
    (SessionState.INIT, HardwareDetected): SessionState.CONNECTED,
    (SessionState.CONNECTED, StrokeStarted): SessionState.RUNNING,
    (SessionState.RUNNING, WorkoutCompleted): SessionState.FINISHED,
}


class RowSessionTracker:
    def __init__(self):
        self.session_state: SessionState = SessionState.INIT

    def process(self, signal: RowSignal) -> bool:
        """
        Process a RowSignal and update the session state.
        Returns:
            True if the signal moved the session to a new state.
            False if the signal is not expected in the current state and was ignored.
        """
        next_state = TRANSITIONS.get((self.session_state, type(signal)))
        if next_state is None:
            logger.debug(f"Ignoring {type(signal).__name__} in state {self.session_state.name}")
            return False

        previous_state = self.session_state
        self.session_state = next_state

        match signal:
            case HardwareDetected():
                logger.info("S4 hardware detected")
            case StrokeStarted():
                logger.info("Row session started")
            case WorkoutCompleted(elapsed_time=elapsed_time):
                logger.info(f"Row session ended after {elapsed_time}s")

        logger.debug(f"Session state changed from {previous_state.name} to {next_state.name} at {signal.timestamp:.3f}")
        return True

    @property
    def is_connected(self) -> bool:
        return self.session_state is not SessionState.INIT

    @property
    def is_running(self) -> bool:
        return self.session_state is SessionState.RUNNING

    @property
    def is_finished(self) -> bool:
        return self.session_state is SessionState.FINISHED
