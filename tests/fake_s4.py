from collections import deque

from wrrecord.s4.s4if import (
    REGISTER_CATALOG,
    SERIAL_READ_TIMEOUT,
    SERIAL_REQUEST_DELAY,
    USB_REQUEST,
    MODEL_INFORMATION_REQUEST,
    WR_RESPONSE,
)

REQUESTS = {register.request: register for register in REGISTER_CATALOG}


def cycle_values(seconds=0, minutes=0, hours=0, distance=0, strokes=0, stroke_avg=0, pull_avg=0,
                 heart_rate=0, pace=0, stroke_rate=0) -> dict[str, str]:
    """Raw S4 payloads for one polling cycle, encoded the way the S4 sends them."""
    return {
        'display_sec': f"{seconds:02d}",
        'display_min': f"{minutes:02d}",
        'display_hr': f"{hours:02d}",
        'total_distance': f"{distance:04X}",
        'stroke_count': f"{strokes:04X}",
        'avg_time_stroke_whole': f"{stroke_avg:02X}",
        'avg_time_stroke_pull': f"{pull_avg:02X}",
        'heart_rate': f"{heart_rate:02X}",
        '500m_pace': f"{pace & 0xFF:02X}{pace >> 8:02X}",
        'stroke_rate': f"{stroke_rate:02X}",
    }


class FakeS4:
    """
    Scripted stand in for the serial link. Requests queue their canned responses, reads return one
    queued chunk at a time and every write and read advances the fake clock as the real link would.
    """

    def __init__(self, cycles=(), model_line="IV41213", after_model=("SS",), hardware_lines=(WR_RESPONSE,)):
        self.written: list[str] = []
        self.now = 0.0
        self._responses: deque[str] = deque()
        self._cycles = list(cycles)
        self._cycle = -1
        self._model_line = model_line
        self._after_model = after_model
        self._hardware_lines = hardware_lines

    def clock(self) -> float:
        return self.now

    def queue(self, *chunks: str) -> None:
        self._responses.extend(chunks)

    def write(self, command: str) -> None:
        self.written.append(command)
        self.now += SERIAL_REQUEST_DELAY

        if command == USB_REQUEST:
            self.queue("".join(f"{line}\r\n" for line in self._hardware_lines))
        elif command == MODEL_INFORMATION_REQUEST:
            if self._model_line:
                self.queue(f"{self._model_line}\r\n")
            self.queue(*(f"{line}\r\n" for line in self._after_model))
        elif command in REQUESTS:
            register = REQUESTS[command]
            if register is REGISTER_CATALOG[0]:
                self._cycle += 1
            if not self._cycles:
                return
            values = self._cycles[min(self._cycle, len(self._cycles) - 1)]
            payload = values.get(register.name)
            if payload is not None:
                self.queue(f"{register.response}{payload}\r\n")

    def read(self) -> str:
        self.now += SERIAL_READ_TIMEOUT
        if self._responses:
            return self._responses.popleft()
        return ""
