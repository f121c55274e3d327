"""
Generic I2C register device built on smbus2 combined transfers.
Keeps track of the device's register pointer so that back-to-back
reads of the same register skip the pointer-select write.
"""

from dataclasses import dataclass, field

import smbus2

from pytmp102.logging import log_warning


def _int_to_bytes(value: int, length: int, endianness: str = "big") -> bytes:
    """Converts the provided integer to bytes."""
    return value.to_bytes(length, endianness)


def int_to_twos_complement(value: int, num_bits: int) -> int:
    """Interpret the low num_bits of value as a two's-complement integer."""
    value &= (1 << num_bits) - 1
    if value & (1 << (num_bits - 1)):
        value -= 1 << num_bits
    return value


@dataclass
class Register:
    name: str
    address: int
    num_bits: int


@dataclass(frozen=True)
class BitField:
    """A contiguous span of bits inside a register word."""

    shift: int
    width: int = 1

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.shift

    def extract(self, word: int) -> int:
        """Returns the field's value from word."""
        return (word & self.mask) >> self.shift

    def insert(self, word: int, value: int) -> int:
        """Returns word with the field replaced by value."""
        if value not in range(0, 1 << self.width):
            raise ValueError(
                f"{value} does not fit in a {self.width}-bit field"
            )
        return (word & ~self.mask) | (value << self.shift)


@dataclass
class GenericDevice:
    """A register device on a borrowed I2C bus.
    The bus is not opened or closed here; whoever created it owns it.
    """

    bus: smbus2.SMBus
    address: int
    cache_pointer: bool = True
    registers: dict[str, Register] = field(default_factory=dict, init=False)

    def __post_init__(self):
        # Unknown until we select a register ourselves.
        self._pointer: int | None = None

    @property
    def pointer(self) -> int | None:
        """The register address the device pointer was last set to."""
        return self._pointer

    def invalidate_pointer(self):
        """Forget the cached pointer so the next read selects its register.
        Needed if another bus client may have addressed the device.
        """
        self._pointer = None

    def add_register(self, reg: Register):
        if reg.name in self.registers:
            raise ValueError(f"Register {reg.name} already defined")
        self.registers[reg.name] = reg

    @property
    def responsive(self) -> bool:
        """Tries to read the first declared register;
        returns boolean indicating success.
        """
        try:
            self.read_block_data(next(iter(self.registers)))
            return True
        except OSError as e:
            log_warning(f"Could not ping I2C device at address {hex(self.address)}: {e}")
            return False

    def register_status(self) -> dict[str, int]:
        """Reads every declared register."""
        return {name: self.read_block_data(name) for name in self.registers}

    def _transfer(self, *msgs: smbus2.i2c_msg):
        try:
            self.bus.i2c_rdwr(*msgs)
        except OSError:
            self._pointer = None
            raise

    def read_block_data(self, register: str) -> int:
        """Reads the named register, big-endian.
        The pointer-select write is skipped when the device
        pointer already addresses this register.
        """
        register = self.registers[register]
        read = smbus2.i2c_msg.read(self.address, register.num_bits // 8)
        if self.cache_pointer and self._pointer == register.address:
            self._transfer(read)
        else:
            select = smbus2.i2c_msg.write(self.address, [register.address])
            self._transfer(select, read)
            self._pointer = register.address

        value = 0
        for x in read:
            value <<= 8
            value |= x
        return value

    def write_block_data(self, register: str, value: int):
        """Writes value to the named register, big-endian."""
        register = self.registers[register]
        num_bytes = register.num_bits // 8
        payload = [register.address] + list(_int_to_bytes(value, num_bytes))
        self._transfer(smbus2.i2c_msg.write(self.address, payload))
        self._pointer = register.address
