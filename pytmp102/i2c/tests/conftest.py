"""
Simulated TMP102 on a fake smbus2 bus.
Accepts real smbus2.i2c_msg objects and records every transfer.
"""

import ctypes

import pytest

from smbus2.smbus2 import I2C_M_RD


class FakeTMP102Bus:
    """Behaves like a TMP102 at a single address.

    not_ready_polls: configuration reads that report "converting"
    after each one-shot trigger.
    """

    def __init__(self, address: int = 0x48):
        self.address = address
        self.registers = {
            0x00: 0x0000,
            0x01: 0x60A0,
            0x02: 0x2580,  # 75 degC, extended mode
            0x03: 0x2800,  # 80 degC, extended mode
        }
        self.pointer = 0x00
        self.transfers: list[list[tuple]] = []
        self.not_ready_polls = 0
        self.conversions = 0
        self._pending = 0
        self.alert_pin = True
        self.error: OSError | None = None
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def i2c_rdwr(self, *msgs):
        if self.error is not None:
            raise self.error
        record = []
        for msg in msgs:
            assert msg.addr == self.address
            if msg.flags & I2C_M_RD:
                data = self._read(self.pointer).to_bytes(2, "big")[: msg.len]
                ctypes.memmove(msg.buf, data, len(data))
                record.append(("read", self.pointer))
            else:
                payload = list(msg)
                self.pointer = payload[0]
                if len(payload) > 1:
                    self._write(payload[0], payload[1:])
                record.append(("write", payload))
        self.transfers.append(record)

    def _read(self, register: int) -> int:
        value = self.registers[register]
        if register != 0x01:
            return value
        value |= 0x6000  # 12-bit resolution, read-only
        value = (value | 0x20) if self.alert_pin else (value & ~0x20)
        if self._pending:
            self._pending -= 1
            return value & ~0x8000
        return value | 0x8000

    def _write(self, register: int, data: list[int]):
        value = int.from_bytes(bytes(data), "big")
        if register == 0x00:
            return
        if register == 0x01:
            if value & 0x8000 and value & 0x0100:
                self.conversions += 1
                self._pending = self.not_ready_polls
            value &= ~0x8000
        self.registers[register] = value

    # Helpers for assertions.

    @property
    def selects(self) -> list[int]:
        """Register addresses written without data (pointer-only)."""
        return [
            payload[0]
            for record in self.transfers
            for kind, payload in record
            if kind == "write" and len(payload) == 1
        ]

    @property
    def config_writes(self) -> list[int]:
        return [
            int.from_bytes(bytes(payload[1:]), "big")
            for record in self.transfers
            for kind, payload in record
            if kind == "write" and payload[0] == 0x01 and len(payload) == 3
        ]

    @property
    def reads(self) -> list[int]:
        return [
            register
            for record in self.transfers
            for kind, register in record
            if kind == "read"
        ]

    def reset_log(self):
        self.transfers.clear()


class SleepRecorder:
    """Stands in for time.sleep."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def bus() -> FakeTMP102Bus:
    return FakeTMP102Bus()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
