"""
Defines a class for interfacing with a TMP102 I2C temperature sensor
by Texas Instruments.

Datasheet: http://www.ti.com/lit/ds/symlink/tmp102.pdf
"""

import math
import time

from typing import Callable, Literal

import smbus2

from pytmp102.logging import log_debug, log_error
from .device import BitField, GenericDevice, Register, int_to_twos_complement


# Device address depending on what the A0 pin is tied to.
A0_GND_ADDRESS = 0x48
A0_VCC_ADDRESS = 0x49
A0_SDA_ADDRESS = 0x4A
A0_SCL_ADDRESS = 0x4B

# Extended mode temperatures are 13-bit, 0.0625 degC per LSB.
LSB_PER_DEGREE = 16
MIN_TEMPERATURE = -(2**12) / LSB_PER_DEGREE
MAX_TEMPERATURE = (2**12 - 1) / LSB_PER_DEGREE


class ConversionTimeoutError(TimeoutError):
    """A one-shot conversion never reported ready."""


def decode_temperature(register_value: int) -> int:
    """Convert a temperature register value into signed 1/16 degC counts.
    The three lowest bits are always zero in extended mode.
    """
    return int_to_twos_complement(register_value >> 3, 13)


def encode_temperature(celsius: float) -> int:
    """Convert degrees Celsius into a temperature register value.
    Precision below 1/16 degC is truncated toward zero.
    """
    if not math.isfinite(celsius):
        raise ValueError(f"Temperature {celsius} is not a finite number")
    counts = int(celsius * LSB_PER_DEGREE)
    if counts not in range(-(2**12), 2**12):
        raise ValueError(
            f"Temperature {celsius} outside representable range "
            f"[{MIN_TEMPERATURE}, {MAX_TEMPERATURE}]"
        )
    return (counts << 3) & 0xFFFF


def raw_to_celsius(raw: int) -> float:
    return raw / LSB_PER_DEGREE


class ConfigurationWord:
    """Fields of the 16-bit configuration register (0x01)."""

    ONE_SHOT = BitField(15)
    RESOLUTION = BitField(13, 2)  # read-only
    FAULT_QUEUE = BitField(11, 2)
    POLARITY = BitField(10)
    THERMOSTAT = BitField(9)
    SHUTDOWN = BitField(8)
    CONVERSION_RATE = BitField(6, 2)
    ALERT = BitField(5)  # read-only
    EXTENDED = BitField(4)

    # Power-on reset value: 4 Hz, comparator mode, active low, alert idle.
    DEFAULT = 0x60A0


class TMP102(GenericDevice):
    """Interface with a connected TMP102 temperature sensor.
    The configuration register is mirrored locally and always
    written back as a whole word.
    """

    ADDRESS_MAP: dict[str, int] = {
        "gnd": A0_GND_ADDRESS,
        "vcc": A0_VCC_ADDRESS,
        "sda": A0_SDA_ADDRESS,
        "scl": A0_SCL_ADDRESS,
    }
    CONVERSION_RATE_MAP: dict[float, int] = {
        0.25: 0b00,
        1: 0b01,
        4: 0b10,
        8: 0b11,
    }
    FAULT_QUEUE_MAP: dict[int, int] = {
        1: 0b00,
        2: 0b01,
        4: 0b10,
        6: 0b11,
    }
    ALERT_MODE_MAP: dict[str, int] = {
        "comparator": 0,
        "interrupt": 1,
    }
    CONVERSION_MODES = ("continuous", "oneshot")

    CONVERSION_TIME = 0.026  # s, typical
    READY_POLL_INTERVAL = 0.0005  # s
    # 50 ms of polling on top of CONVERSION_TIME, past the 35 ms maximum.
    MAX_READY_POLLS = 100

    def __init__(
        self,
        bus: smbus2.SMBus,
        address: int = A0_GND_ADDRESS,
        sleep: Callable[[float], None] | None = None,
        max_ready_polls: int = MAX_READY_POLLS,
        cache_pointer: bool = True,
    ):
        """Initialization forces the device into extended mode,
        writing the default configuration to it.
        """
        super().__init__(bus=bus, address=address, cache_pointer=cache_pointer)
        self.add_register(Register("temperature", 0x00, 16))
        self.add_register(Register("config", 0x01, 16))
        self.add_register(Register("t_low", 0x02, 16))
        self.add_register(Register("t_high", 0x03, 16))
        self._sleep = sleep or time.sleep
        self.max_ready_polls = max_ready_polls
        self._conversion_mode: Literal["continuous", "oneshot"] = "continuous"
        self._config = ConfigurationWord.DEFAULT
        self._write_config(ConfigurationWord.EXTENDED.insert(ConfigurationWord.DEFAULT, 1))
        log_debug(f"TMP102 at {hex(self.address)} configured for extended mode")

    @property
    def config_register(self) -> int:
        """The local copy of the configuration register."""
        return self._config

    def _write_config(self, word: int):
        """Write word to the device; the local copy follows only on success."""
        self.write_block_data("config", word)
        self._config = word

    def _update_config(self, field: BitField, value: int):
        """Replace one field and write the whole word to the device."""
        self._write_config(field.insert(self._config, value))

    def refresh_config(self) -> int:
        """Re-read the configuration register into the local copy.
        Returns the value as read; the local copy drops the one-shot
        bit so a later write does not start a conversion.
        """
        value = self.read_block_data("config")
        self._config = ConfigurationWord.ONE_SHOT.insert(value, 0)
        return value

    @property
    def conversion_rate(self) -> float:
        """Continuous-mode sampling rate in Hz."""
        code = ConfigurationWord.CONVERSION_RATE.extract(self._config)
        return next(r for r, c in self.CONVERSION_RATE_MAP.items() if c == code)

    @conversion_rate.setter
    def conversion_rate(self, rate: float):
        """Set the sampling rate: 0.25, 1, 4, or 8 Hz."""
        try:
            if isinstance(rate, bool):
                raise TypeError(rate)
            code = self.CONVERSION_RATE_MAP[rate]
        except (KeyError, TypeError) as e:
            raise ValueError(
                f"Invalid conversion rate {rate}; "
                f"must be one of: {list(self.CONVERSION_RATE_MAP.keys())}"
            ) from e
        self._update_config(ConfigurationWord.CONVERSION_RATE, code)

    @property
    def fault_queue_length(self) -> int:
        """Consecutive faults needed to trigger the alert."""
        code = ConfigurationWord.FAULT_QUEUE.extract(self._config)
        return next(n for n, c in self.FAULT_QUEUE_MAP.items() if c == code)

    @fault_queue_length.setter
    def fault_queue_length(self, length: int):
        """Set the fault queue length: 1, 2, 4, or 6."""
        if isinstance(length, bool) or length not in list(self.FAULT_QUEUE_MAP):
            raise ValueError(
                f"Invalid fault queue length {length}; "
                f"must be one of: {list(self.FAULT_QUEUE_MAP.keys())}"
            )
        self._update_config(ConfigurationWord.FAULT_QUEUE, self.FAULT_QUEUE_MAP[length])

    @property
    def alert_mode(self) -> Literal["comparator", "interrupt"]:
        """Thermostat mode, read back from the device."""
        self.refresh_config()
        if ConfigurationWord.THERMOSTAT.extract(self._config):
            return "interrupt"
        return "comparator"

    @alert_mode.setter
    def alert_mode(self, mode: Literal["comparator", "interrupt"]):
        if mode not in list(self.ALERT_MODE_MAP):
            raise ValueError(
                f'Alert mode "{mode}" invalid; '
                f"must be one of: {list(self.ALERT_MODE_MAP.keys())}"
            )
        self._update_config(ConfigurationWord.THERMOSTAT, self.ALERT_MODE_MAP[mode])

    @property
    def alert_polarity(self) -> bool:
        """True if the alert pin is active high."""
        return bool(ConfigurationWord.POLARITY.extract(self._config))

    @alert_polarity.setter
    def alert_polarity(self, active_high: bool):
        if active_high not in (True, False):
            raise ValueError(f"Alert polarity must be True or False, not {active_high}.")
        self._update_config(ConfigurationWord.POLARITY, int(active_high))

    @property
    def alert_high_temperature(self) -> float:
        """Upper alert threshold in degrees Celsius."""
        return raw_to_celsius(decode_temperature(self.read_block_data("t_high")))

    @alert_high_temperature.setter
    def alert_high_temperature(self, celsius: float):
        self.write_block_data("t_high", encode_temperature(celsius))

    @property
    def alert_low_temperature(self) -> float:
        """Lower alert threshold in degrees Celsius."""
        return raw_to_celsius(decode_temperature(self.read_block_data("t_low")))

    @alert_low_temperature.setter
    def alert_low_temperature(self, celsius: float):
        self.write_block_data("t_low", encode_temperature(celsius))

    @property
    def shutdown(self) -> bool:
        return bool(ConfigurationWord.SHUTDOWN.extract(self._config))

    @shutdown.setter
    def shutdown(self, shutdown: bool):
        """Shutdown stops continuous conversion.
        Waking the device up always returns it to continuous mode.
        """
        if shutdown not in (True, False):
            raise ValueError(f"Shutdown must be True or False, not {shutdown}.")
        self._update_config(ConfigurationWord.SHUTDOWN, int(shutdown))
        if not shutdown:
            self._conversion_mode = "continuous"

    @property
    def conversion_mode(self) -> Literal["continuous", "oneshot"]:
        return self._conversion_mode

    @conversion_mode.setter
    def conversion_mode(self, mode: Literal["continuous", "oneshot"]):
        """In oneshot mode the device stays shut down between
        conversions requested by read_temperature().
        """
        if mode not in self.CONVERSION_MODES:
            raise ValueError(
                f'Conversion mode "{mode}" invalid; '
                f"must be one of: {list(self.CONVERSION_MODES)}"
            )
        self.shutdown = mode == "oneshot"
        self._conversion_mode = mode
        log_debug(f"TMP102 at {hex(self.address)} switched to {mode} conversion")

    @property
    def alert_pin(self) -> bool:
        """Raw state of the alert bit, read from the device."""
        self.refresh_config()
        return bool(ConfigurationWord.ALERT.extract(self._config))

    @property
    def has_alert(self) -> bool:
        """Whether an alert is active, regardless of polarity."""
        pin = self.alert_pin
        return pin if self.alert_polarity else not pin

    def _convert_one_shot(self):
        """Trigger a single conversion and block until it completes."""
        # The trigger bit is never kept in the local copy.
        self.write_block_data("config", ConfigurationWord.ONE_SHOT.insert(self._config, 1))
        self._sleep(self.CONVERSION_TIME)
        for attempt in range(self.max_ready_polls):
            if ConfigurationWord.ONE_SHOT.extract(self.refresh_config()):
                return
            if attempt + 1 < self.max_ready_polls:
                self._sleep(self.READY_POLL_INTERVAL)
        log_error(
            f"TMP102 at {hex(self.address)} not ready after "
            f"{self.max_ready_polls} polls"
        )
        raise ConversionTimeoutError(
            f"One-shot conversion did not complete after {self.max_ready_polls} polls"
        )

    def read_raw_temperature(self) -> int:
        """Temperature in signed 1/16 degC counts.
        In continuous mode this is the latest sample; in oneshot mode
        a new conversion is triggered and waited for (>= 26 ms).
        """
        if self._conversion_mode == "oneshot":
            self._convert_one_shot()
        return decode_temperature(self.read_block_data("temperature"))

    def read_temperature(self) -> float:
        """Temperature in degrees Celsius."""
        return raw_to_celsius(self.read_raw_temperature())
