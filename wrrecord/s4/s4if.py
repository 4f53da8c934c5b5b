# ---------------------------------------------------------------------------
# Based on the elp3dr0 repo "WRowFusion"
# https://github.com/elp3dr0/WRowFusion
# Which in turn was based on the inonoob repo "pirowflo"
# https://github.com/inonoob/pirowflo
# Reworked as a workout recorder for wrrecord
# ---------------------------------------------------------------------------

import logging
import string
import time

import serial

from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)
serial_logger = logging.getLogger('s4serial')

'''
The REGISTER_CATALOG details the S4 memory registers that are polled once per cycle while a workout
is being recorded: the name under which the value is collected, the request sent to the S4, the
prefix of the S4's response and the rule used to turn the ASCII payload of that response into a number.

A read request is IR + (S=Single, D=Double, T=Triple) + XXX, where XXX is the register address in ACH
(ascii coded hexadecimal). The S4 answers with ID + (S, D, T) + XXX followed by the value.

Note: the display time registers (1E1, 1E2, 1E3) hold decimal digits rather than ACH values. Distance
and stroke count are double registers, but the S4 returns them most significant byte first so the
payload can be read as a single hex number. The 500m pace register is the exception: it is returned
low byte first and has to be recomposed as low + 256 * high.

(*) stroke_average and stroke_pull are measured in number of 25ms periods.
(*) The documentation in Water Rower S4 S5 USB Protocol Iss 1 04.pdf states:
    "Stroke_pull is first subtracted from stroke_average then a modifier of 1.25 multiplied by the result
    to generate the ratio value for display."
    The S4 actually displays (stroke duration - stroke pull)/(stroke pull * 1.25).
(*) Pace, stroke rate and heart rate are reported as 0 when the S4 has no reading for them (e.g. no heart
    rate belt, or 500m units not selected on the monitor).
'''

# Packet identifiers as specified in Water Rower S4 S5 USB Protocol Iss 1 04.pdf.
# REQUEST sent from PC to device
# RESPONSE sent from device to PC

USB_REQUEST = "USB"                # First packet to be sent in order to instruct S4 to establish communications
MODEL_INFORMATION_REQUEST = "IV?"  # Request Model Information
READ_MEMORY_REQUEST = "IR"         # Read a memory location IR+(S=Single,D=Double,T=Triple) + XXX (XXX is in ACH format)
EXIT_REQUEST = "EXIT"              # Application is exiting, stop sending packets

WR_RESPONSE = "_WR_"               # Hardware Type response to acknowledge USB_REQUEST and initiate sending packets
MODEL_INFORMATION_RESPONSE = "IV"  # Current model information IV+Model(4 or 5)+Firmware Version High+Firmware Version Low (e.g for Firmware 02.10, High is 02, low is 10)
READ_MEMORY_RESPONSE = "ID"        # Value from a memory location ID +(type) + Y3 Y2 Y1
STROKE_START_RESPONSE = "SS"       # Start of stroke
ERROR_RESPONSE = "ERROR"           # Unknown packet recieved.

SIZE_MAP = {
    'single': {'request': 'IRS', 'response': 'IDS'},
    'double': {'request': 'IRD', 'response': 'IDD'},
    'triple': {'request': 'IRT', 'response': 'IDT'},
    }

DATA_RESPONSE_PREFIXES = tuple(entry['response'] for entry in SIZE_MAP.values())

# A data frame is the size prefix, the 3 character address and at least one digit of payload
MIN_DATA_FRAME_LENGTH = 7
MODEL_INFORMATION_LENGTH = 7

# SERIAL SETTINGS AND PROGRAM CONTROL DELAYS
SERIAL_BAUDRATE = 115200
SERIAL_READ_TIMEOUT = 0.01      # The maximum time allowed for each serial read. An empty read is not an error.
SERIAL_REQUEST_DELAY = 0.025    # The delay after each request written to the serial device. The S4 drops
                                # requests that arrive back to back without this settling time.
READ_BUFFER_SIZE = 1024
REQUESTING_INTERVAL = 2.0       # Time budget for one polling cycle, measured from the first request of the cycle
CONNECT_TIMEOUT = 2.0           # Time allowed for the S4 to answer USB and IV? requests


# CUSTOM EXCEPTIONS
class S4ConnectionError(ConnectionError):
    pass

class SerialNotConnectedError(S4ConnectionError):
    pass

class S4DecodeError(ValueError):
    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(message)
        self.missing = missing or []


# DECODING RULES
def is_ascii_digits(payload: str, alphabet: str) -> bool:
    return bool(payload) and all(char in alphabet for char in payload)


@dataclass(frozen=True)
class DecimalByte:
    """Payload holds decimal digits, e.g. '59' -> 59."""

    def decode(self, payload: str) -> int:
        if not is_ascii_digits(payload, string.digits):
            raise S4DecodeError(f"Invalid decimal payload: {payload!r}")
        return int(payload, base=10)


@dataclass(frozen=True)
class HexByte:
    """Payload is read as one hexadecimal number, e.g. '0A01' -> 2561."""

    def decode(self, payload: str) -> int:
        # int() alone would accept a sign, a 0x prefix and underscores
        if not is_ascii_digits(payload, string.hexdigits):
            raise S4DecodeError(f"Invalid hexadecimal payload: {payload!r}")
        return int(payload, base=16)


@dataclass(frozen=True)
class HexMultiByte:
    """
    Payload holds `width` hex byte pairs which are recomposed according to `byteorder`.
    For a little endian double, '0A01' -> 0x0A + 256 * 0x01 = 266.
    """
    width: int
    byteorder: str = 'little'

    def decode(self, payload: str) -> int:
        if len(payload) != self.width * 2:
            raise S4DecodeError(f"Payload {payload!r} does not hold exactly {self.width} bytes")
        if not is_ascii_digits(payload, string.hexdigits):
            raise S4DecodeError(f"Invalid hexadecimal payload: {payload!r}")
        pairs = bytes.fromhex(payload)
        return int.from_bytes(pairs, byteorder=self.byteorder)


@dataclass(frozen=True)
class TelemetryRegister:
    name: str
    address: str
    size: str
    rule: DecimalByte | HexByte | HexMultiByte

    @property
    def request(self) -> str:
        return SIZE_MAP[self.size]['request'] + self.address

    @property
    def response(self) -> str:
        return SIZE_MAP[self.size]['response'] + self.address

    def decode(self, payload: str) -> int:
        return self.rule.decode(payload)


# The registers are requested in this order every cycle.
REGISTER_CATALOG: tuple[TelemetryRegister, ...] = (
    TelemetryRegister('display_sec', '1E1', 'single', DecimalByte()),            # seconds 0-59
    TelemetryRegister('display_min', '1E2', 'single', DecimalByte()),            # minutes 0-59
    TelemetryRegister('display_hr', '1E3', 'single', DecimalByte()),             # hours 0-9
    TelemetryRegister('total_distance', '055', 'double', HexByte()),             # distance in metres since reset
    TelemetryRegister('stroke_count', '140', 'double', HexByte()),               # total strokes since reset
    TelemetryRegister('avg_time_stroke_whole', '142', 'single', HexByte()),      # average time for a whole stroke in 25ms periods
    TelemetryRegister('avg_time_stroke_pull', '143', 'single', HexByte()),       # average time for a pull in 25ms periods
    TelemetryRegister('heart_rate', '1A0', 'single', HexByte()),                 # instantaneous heart rate
    TelemetryRegister('500m_pace', '1A5', 'double', HexMultiByte(width=2)),      # instantaneous 500m pace (secs)
    TelemetryRegister('stroke_rate', '1A9', 'single', HexByte()),                # instantaneous strokes per min
)

REGISTERS_BY_NAME = {register.name: register for register in REGISTER_CATALOG}


# CUSTOM DATACLASS
@dataclass
class S4Event:
    type: str
    payload: Optional[str] = None
    raw: Optional[str] = None

    @classmethod
    def parse_line(cls, line: str) -> Optional['S4Event']:
        """
        Turns one line received from the S4 into an event. Lines the recorder has no use for
        (stroke end, pulse counts, PING, OK) are ignored.
        """
        cmd = line.strip()
        if not cmd:
            return None

        if cmd == WR_RESPONSE:
            return cls(type='wr', raw=cmd)
        elif cmd == STROKE_START_RESPONSE:
            return cls(type='stroke_start', raw=cmd)
        elif cmd == ERROR_RESPONSE:
            return cls(type='error', raw=cmd)
        elif cmd.startswith(READ_MEMORY_RESPONSE):
            return read_reply(cmd)
        elif cmd.startswith(MODEL_INFORMATION_RESPONSE):
            if len(cmd) < MODEL_INFORMATION_LENGTH:
                logger.warning(f"Model information from S4 is too short: {cmd!r}")
                return None
            return cls(type='model', payload=cmd[len(MODEL_INFORMATION_RESPONSE):], raw=cmd)
        else:
            logger.debug(f"Unrecognised command line captured from S4: {cmd}")
            return None


# HELPER FUNCTIONS
def read_reply(cmd: str) -> Optional[S4Event]:
    """
    Matches a memory read response against the register catalog.
    Returns:
        S4Event: with the register name as type and everything after the response prefix as payload.
        None: if the line is not a data frame or holds a register that is not polled.
    """
    if len(cmd) < MIN_DATA_FRAME_LENGTH or cmd[:3] not in DATA_RESPONSE_PREFIXES:
        logger.debug(f"Ignoring S4 read memory response that is not a data frame: {cmd!r}")
        return None

    for register in REGISTER_CATALOG:
        if cmd.startswith(register.response):
            return S4Event(register.name, cmd[len(register.response):], cmd)

    # Registers that aren't in the catalog are not decoded.
    return None


def parse_model_information(payload: str) -> tuple[str, str]:
    """
    Splits the payload of a model information response into model and firmware version.
    Args: payload (str): the response without the IV prefix, e.g. '41213'.
    Returns:
        tuple: model (e.g. '4') and firmware version (e.g. '12.13').
    """
    return payload[0:1], f"{payload[1:3]}.{payload[3:5]}"


def compute_stroke_ratio(stroke_time_avg: int, pull_time_avg: int) -> float:
    # Use the documented WR formula, which has a 1.25 multiplier
    if pull_time_avg > 0:
        return (stroke_time_avg - pull_time_avg) / (pull_time_avg * 1.25)
    return 0.0


class Rower(object):
    """
    Owns the serial link to the S4. Writes are newline terminated and followed by SERIAL_REQUEST_DELAY,
    reads are single bounded reads of whatever the S4 has sent so far.
    """

    def __init__(self, port: str):
        self._serial = serial.Serial()
        self._serial.port = port
        self._serial.baudrate = SERIAL_BAUDRATE
        self._serial.timeout = SERIAL_READ_TIMEOUT

    @property
    def port(self) -> str:
        return self._serial.port

    def open(self) -> None:
        logger.debug(f"Attempting to open serial port {self.port}...")
        try:
            self._serial.open()
        except serial.SerialException as e:
            logger.error(f"Error encountered opening serial port {self.port}: {e}")
            raise S4ConnectionError(f"Failed to open serial port {self.port}") from e
        logger.info("Serial port open.")

    def close(self) -> None:
        if self._serial.is_open:
            logger.debug("Closing serial communications with S4.")
            self._serial.close()

    def write(self, command: str) -> None:
        if not self._serial.is_open:
            raise SerialNotConnectedError("Serial port is not connected.")
        serial_logger.debug(f"COMMAND: {command}")
        try:
            self._serial.write((command + '\n').encode('ascii'))
            self._serial.flush()
        except serial.SerialException as e:
            logger.error(f"Serial write communication error: {e}")
            raise S4ConnectionError(f"Sending {command!r} to the S4 failed") from e
        time.sleep(SERIAL_REQUEST_DELAY)

    def read(self) -> str:
        if not self._serial.is_open:
            raise SerialNotConnectedError("Serial port is not connected.")
        try:
            data = self._serial.read(READ_BUFFER_SIZE)  # The self._serial.timeout bounds this read
        except serial.SerialException as e:
            logger.error(f"Serial read communication error: {e}")
            raise S4ConnectionError("Receiving from the S4 failed") from e

        response = data.decode('ascii', errors='replace')
        if response:
            serial_logger.debug(f"RESPONSE: {response!r}")
        return response

    def __enter__(self) -> 'Rower':
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
