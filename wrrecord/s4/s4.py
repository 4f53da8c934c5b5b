# ---------------------------------------------------------------------------
# Based on the elp3dr0 repo "WRowFusion"
# https://github.com/elp3dr0/WRowFusion
# Which in turn was based on the inonoob repo "pirowflo"
# https://github.com/inonoob/pirowflo
# Reworked as a workout recorder for wrrecord
# ---------------------------------------------------------------------------

import logging
import time
from datetime import datetime
from typing import Callable, Protocol

from wrrecord.s4.s4if import (
    S4Event,
    S4DecodeError,
    SerialNotConnectedError,
    S4ConnectionError,
    REGISTER_CATALOG,
    REGISTERS_BY_NAME,
    REQUESTING_INTERVAL,
    READ_BUFFER_SIZE,
    CONNECT_TIMEOUT,
    USB_REQUEST,
    EXIT_REQUEST,
    MODEL_INFORMATION_REQUEST,
    compute_stroke_ratio,
    parse_model_information,
)
from wrrecord.rows.row_tracker import RowSessionTracker
from wrrecord.rows.row_signals import (
    HardwareDetected,
    StrokeStarted,
    WorkoutCompleted,
)
from wrrecord.rows.row_stats import (
    InstantSample,
    WorkoutMeta,
    WorkoutSummary,
    summarise,
)

logger = logging.getLogger(__name__)

'''
This module runs one workout recording session against the S4:
1) start(): sends USB and waits for the _WR_ hardware response (Init -> Connected).
2) read_model_info(): sends IV? and captures model and firmware version together with the start time.
3) wait_for_first_stroke(): blocks until the S4 reports a stroke start (Connected -> Running). There is
   no timeout: the session waits for the rower to be pulled for as long as it takes.
4) poll(): one cycle. Every register of the catalog is requested, then responses are collected until
   REQUESTING_INTERVAL has passed since the cycle began. Responses arrive interleaved and out of order,
   so they are collected by register name and only decoded once the budget has expired.
   When the S4 clock stops advancing, the user has ended the workout on the monitor (Running -> Finished).
5) stop(): sends EXIT.

A cycle where a register's response does not arrive in time is dropped rather than completed with
stale values.
'''

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class RowerLink(Protocol):
    def write(self, command: str) -> None: ...
    def read(self) -> str: ...


class RowerSession(object):
    def __init__(self, rower: RowerLink, clock: Callable[[], float] = time.monotonic,
                 now: Callable[[], datetime] = datetime.now):
        self._rower = rower
        self._clock = clock
        self._now = now
        self._pending = ""      # Trailing partial line carried over to the next read
        self.session_tracker = RowSessionTracker()
        self.meta = WorkoutMeta()
        self.samples: list[InstantSample] = []
        self.error_count = 0
        self.dropped_cycles = 0
        self._data_logger = logging.getLogger('s4data')

    @property
    def state(self):
        return self.session_tracker.session_state

    @property
    def total_time_in_seconds(self) -> int:
        return self.samples[-1].time_in_seconds if self.samples else 0

    @property
    def total_distance_in_meters(self) -> int:
        return self.samples[-1].distance_in_meters if self.samples else 0

    @property
    def total_stroke_count(self) -> int:
        return self.samples[-1].stroke_count if self.samples else 0

    def _receive_events(self) -> list[S4Event]:
        data = self._pending + self._rower.read()
        lines = data.splitlines(keepends=True)
        if lines and not lines[-1].endswith(('\n', '\r')):
            self._pending = lines.pop()
        else:
            self._pending = ""
        if len(self._pending) > READ_BUFFER_SIZE:
            logger.debug(f"Discarding {len(self._pending)} unterminated characters received from S4")
            self._pending = ""

        events = []
        for line in lines:
            event = S4Event.parse_line(line)
            if event is None:
                continue
            if event.type == 'error':
                self._handle_error(event)
            else:
                events.append(event)
        return events

    def _handle_error(self, evt: S4Event) -> None:
        self.error_count += 1
        logger.warning(f"Received error packet from S4: {evt.raw}")

    def _collect_until(self, done: Callable[[S4Event], bool], timeout: float) -> bool:
        start = self._clock()
        found = False
        while not found and self._clock() - start < timeout:
            for event in self._receive_events():
                found = done(event) or found
        return found

    def start(self) -> None:
        logger.info("Initiating communication with S4 monitor.")
        self._rower.write(USB_REQUEST)

        def on_event(event: S4Event) -> bool:
            if event.type == 'wr':
                self.session_tracker.process(HardwareDetected(self._clock()))
            return self.session_tracker.is_connected

        if not self._collect_until(on_event, CONNECT_TIMEOUT):
            raise S4ConnectionError(f"No hardware response from S4 within {CONNECT_TIMEOUT}s")

    def read_model_info(self) -> WorkoutMeta:
        self.meta.date_time_start = self._now().strftime(DATE_TIME_FORMAT)
        self._rower.write(MODEL_INFORMATION_REQUEST)

        def on_event(event: S4Event) -> bool:
            if event.type != 'model':
                return False
            self.meta.model, self.meta.fw_version = parse_model_information(event.payload)
            return True

        if not self._collect_until(on_event, CONNECT_TIMEOUT):
            logger.warning("S4 did not report its model information")
        return self.meta

    def wait_for_first_stroke(self) -> None:
        if not self.session_tracker.is_connected:
            raise SerialNotConnectedError("Cannot wait for a stroke before the S4 is connected.")
        while not self.session_tracker.is_running:
            for event in self._receive_events():
                if event.type == 'stroke_start':
                    self.session_tracker.process(StrokeStarted(self._clock()))

    def collect_raw_values(self) -> dict[str, str]:
        """
        Requests every register of the catalog and collects the responses that arrive within
        REQUESTING_INTERVAL of the first request. A later response for a register overwrites an earlier one.
        """
        start = self._clock()
        raw_values: dict[str, str] = {}

        for register in REGISTER_CATALOG:
            self._rower.write(register.request)

        while self._clock() - start < REQUESTING_INTERVAL:
            for event in self._receive_events():
                if event.type in REGISTERS_BY_NAME:
                    raw_values[event.type] = event.payload
        return raw_values

    def poll(self) -> InstantSample | None:
        """
        Runs one polling cycle.
        Returns:
            InstantSample: the sample appended to the session.
            None: if the workout was found to be finished, in which case the sample is discarded.
        Raises:
            S4DecodeError: if a register is missing from the cycle or its payload is malformed.
        """
        if not self.session_tracker.is_running:
            raise SerialNotConnectedError(f"Cannot poll the S4 in state {self.state.name}.")

        sample = decode_sample(self.collect_raw_values())

        # The S4 clock stops when the workout is ended on the monitor
        if sample.time_in_seconds > 0 and sample.time_in_seconds == self.total_time_in_seconds:
            self.session_tracker.process(WorkoutCompleted(self._clock(), sample.time_in_seconds))
            return None

        self.samples.append(sample)
        self._log_s4data(sample)
        return sample

    def record(self) -> list[InstantSample]:
        while not self.session_tracker.is_finished:
            try:
                self.poll()
            except S4DecodeError as e:
                self.dropped_cycles += 1
                logger.error(f"Dropping polling cycle: {e}")
        return self.samples

    def stop(self) -> None:
        logger.info("Closing S4 workout session.")
        self._rower.write(EXIT_REQUEST)

    def finalise(self) -> WorkoutSummary:
        self.meta.date_time_end = self._now().strftime(DATE_TIME_FORMAT)
        return summarise(self.samples, self.meta)

    def _log_s4data(self, sample: InstantSample) -> None:
        '''
        Logs each recorded sample to the s4data logger defined in logging.conf, e.g. to watch a workout
        at the terminal with:
        less +F logs/wrrecord_s4_data.log
        '''
        if not self._data_logger.isEnabledFor(logging.INFO):
            return
        self._data_logger.info(f"sample {len(self.samples)}: {sample}")


def decode_sample(raw_values: dict[str, str]) -> InstantSample:
    missing = [register.name for register in REGISTER_CATALOG if register.name not in raw_values]
    if missing:
        raise S4DecodeError(f"No response from S4 for: {', '.join(missing)}", missing)

    values = {name: REGISTERS_BY_NAME[name].decode(payload) for name, payload in raw_values.items()
              if name in REGISTERS_BY_NAME}

    return InstantSample(
        time_in_seconds=values['display_sec'] + 60 * values['display_min'] + 3600 * values['display_hr'],
        distance_in_meters=values['total_distance'],
        seconds_per_500m=values['500m_pace'],
        stroke_count=values['stroke_count'],
        strokes_per_minute=values['stroke_rate'],
        stroke_ratio=compute_stroke_ratio(values['avg_time_stroke_whole'], values['avg_time_stroke_pull']),
        heart_rate=values['heart_rate'],
    )
