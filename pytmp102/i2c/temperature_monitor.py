import argparse
import datetime
import time

import smbus2

from pytmp102.i2c.devices.tmp102 import TMP102


def _address(value: str) -> int:
    """Accepts an A0 pin name (gnd, vcc, sda, scl) or an integer address."""
    if value.lower() in TMP102.ADDRESS_MAP:
        return TMP102.ADDRESS_MAP[value.lower()]
    return int(value, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print TMP102 temperature readings.")
    parser.add_argument("--bus", type=int, default=1, help="I2C bus number")
    parser.add_argument("--address", type=_address, default=TMP102.ADDRESS_MAP["gnd"],
                        help="A0 pin strap (gnd, vcc, sda, scl) or address")
    parser.add_argument("--rate", type=float, choices=list(TMP102.CONVERSION_RATE_MAP),
                        default=4, help="continuous conversion rate in Hz")
    parser.add_argument("--fault-queue", type=int, choices=list(TMP102.FAULT_QUEUE_MAP),
                        default=1)
    parser.add_argument("--alert-mode", choices=list(TMP102.ALERT_MODE_MAP),
                        default="comparator")
    parser.add_argument("--active-high", action="store_true",
                        help="alert pin is active high")
    parser.add_argument("--oneshot", action="store_true",
                        help="trigger a conversion for every reading")
    parser.add_argument("--interval", type=float, default=1.0,
                        help="seconds between readings")
    parser.add_argument("--count", type=int, default=None,
                        help="stop after this many readings")
    parser.add_argument("--dump", action="store_true",
                        help="print all registers before reading")
    return parser


def main(argv: list[str] | None = None):

    args = build_parser().parse_args(argv)
    with smbus2.SMBus(args.bus) as bus:
        device = TMP102(bus, args.address)
        device.conversion_rate = args.rate
        device.fault_queue_length = args.fault_queue
        device.alert_mode = args.alert_mode
        device.alert_polarity = args.active_high
        if args.oneshot:
            device.conversion_mode = "oneshot"

        print(f"Conversion rate: {device.conversion_rate} Hz")
        print(f"Fault queue length: {device.fault_queue_length}")
        print(f"Alert mode: {device.alert_mode}")
        print(f"Alert polarity: {'active high' if device.alert_polarity else 'active low'}")
        if args.dump:
            for name, data in device.register_status().items():
                print(f"{name.rjust(12)}:", f"{data:016b}", f"{data:#06x}")

        n = 0
        while args.count is None or n < args.count:
            now = datetime.datetime.now()
            print(f"[{now}] TMP102 temperature: {device.read_temperature():0.4f} C")
            n += 1
            if args.count is None or n < args.count:
                time.sleep(args.interval)


if __name__ == "__main__":
    main()
