#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException

import caparoc_registers as regs

SLAVE_ID_MAX = 247

GLOBAL_STATUS_BITS = (
    "undervoltage",
    "overvoltage",
    "cumulative_channel_error",
    "cumulative_80_warning",
    "system_current_too_high",
)

CHANNEL_STATUS_BITS = (
    "warning_80_percent",
    "overload",
    "short_circuit",
    "hardware_error",
    "voltage_error",
    "module_current_too_high",
    "system_current_too_high",
)


def _bit(bits: int, index: int) -> bool:
    return bool((bits >> index) & 0x1)


@dataclass(frozen=True)
class GlobalStatus:
    undervoltage: bool = False
    overvoltage: bool = False
    cumulative_channel_error: bool = False
    cumulative_80_warning: bool = False
    system_current_too_high: bool = False

    @classmethod
    def from_bits(cls, bits: int) -> GlobalStatus:
        return cls(**{name: _bit(bits, i) for i, name in enumerate(GLOBAL_STATUS_BITS)})


@dataclass(frozen=True)
class ChannelStatus:
    warning_80_percent: bool = False
    overload: bool = False
    short_circuit: bool = False
    hardware_error: bool = False
    voltage_error: bool = False
    module_current_too_high: bool = False
    system_current_too_high: bool = False

    @classmethod
    def from_bits(cls, bits: int) -> ChannelStatus:
        return cls(**{name: _bit(bits, i) for i, name in enumerate(CHANNEL_STATUS_BITS)})


@dataclass(frozen=True)
class SystemStatus:
    global_status: GlobalStatus | None = None
    total_current: int | None = None
    input_voltage: int | None = None
    sum_nominal_currents: int | None = None
    internal_temperature: int | None = None


def words_to_string(words: list[int]) -> str:
    raw = b"".join(w.to_bytes(2, "big") for w in words)
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()


def words_to_uint32(words: list[int]) -> int:
    return ((words[0] & 0xFFFF) << 16) | (words[1] & 0xFFFF)


def to_int16(value: int) -> int:
    return value - 0x10000 if value & 0x8000 else value


class CaparocDevice:
    """
    Blocking Modbus TCP access to a CAPAROC system.

    Reads return None and writes return False when the device does not answer
    or answers with an exception; the reason is kept in last_error.
    """

    def __init__(self, ip_address: str, port: int, timeout: float, slave_id: int = 1):
        if slave_id < 0 or slave_id > SLAVE_ID_MAX:
            raise ValueError(f"slave-id must be 0..{SLAVE_ID_MAX}")

        self.ip_address = ip_address
        self.port = port
        self.timeout = timeout
        self.slave_id = slave_id
        self.last_error = ""

        self.client = ModbusTcpClient(ip_address, port=port, timeout=timeout)

    def connect(self) -> bool:
        try:
            if self.client.connect():
                return True
            self.last_error = "no response from device"
        except ModbusException as exc:
            self.last_error = str(exc)
        return False

    def close(self) -> None:
        self.client.close()

    def set_slave_id(self, slave_id: int) -> bool:
        if slave_id < 0 or slave_id > SLAVE_ID_MAX:
            self.last_error = f"invalid slave id {slave_id}"
            return False
        self.slave_id = slave_id
        return True

    def _read_words(self, address: int, count: int) -> list[int] | None:
        try:
            rr = self.client.read_holding_registers(address, count=count, slave=self.slave_id)
        except ModbusException as exc:
            self.last_error = str(exc)
            return None
        if rr.isError():
            self.last_error = str(rr)
            return None
        if len(rr.registers) < count:
            self.last_error = f"short read at 0x{address:04X}: {len(rr.registers)} of {count} words"
            return None
        return list(rr.registers[:count])

    def _write_words(self, address: int, words: list[int]) -> bool:
        try:
            if len(words) == 1:
                rr = self.client.write_register(address, words[0], slave=self.slave_id)
            else:
                rr = self.client.write_registers(address, words, slave=self.slave_id)
        except ModbusException as exc:
            self.last_error = str(exc)
            return False
        if rr.isError():
            self.last_error = str(rr)
            return False
        return True

    def read_uint16(self, address: int) -> int | None:
        words = self._read_words(address, 1)
        return None if words is None else words[0]

    def read_uint32(self, address: int) -> int | None:
        words = self._read_words(address, 2)
        return None if words is None else words_to_uint32(words)

    def read_string32(self, address: int) -> str | None:
        words = self._read_words(address, regs.STRING32_WORDS)
        return None if words is None else words_to_string(words)

    def write_uint16(self, address: int, value: int) -> bool:
        return self._write_words(address, [value & 0xFFFF])

    def write_uint32(self, address: int, value: int) -> bool:
        return self._write_words(address, [(value >> 16) & 0xFFFF, value & 0xFFFF])

    def read_coil(self, address: int) -> bool | None:
        try:
            rr = self.client.read_coils(address, count=1, slave=self.slave_id)
        except ModbusException as exc:
            self.last_error = str(exc)
            return None
        if rr.isError():
            self.last_error = str(rr)
            return None
        return bool(rr.bits[0])

    def write_coil(self, address: int, state: bool) -> bool:
        try:
            rr = self.client.write_coil(address, state, slave=self.slave_id)
        except ModbusException as exc:
            self.last_error = str(exc)
            return False
        if rr.isError():
            self.last_error = str(rr)
            return False
        return True

    def reset_application_params_power_and_cb(self) -> bool:
        return self.write_uint16(regs.REG_RESET_APP_PARAMS_POWER_AND_CB, regs.CMD_EXECUTE)

    def global_channel_error_reset_all_cb(self) -> bool:
        return self.write_uint16(regs.REG_GLOBAL_CHANNEL_ERROR_RESET_ALL_CB, regs.CMD_EXECUTE)

    def error_counter_reset_all_cb(self) -> bool:
        return self.write_uint16(regs.REG_ERROR_COUNTER_RESET_ALL_CB, regs.CMD_EXECUTE)

    def reset_application_params_quint(self) -> bool:
        return self.write_uint16(regs.REG_RESET_APP_PARAMS_QUINT, regs.CMD_EXECUTE)

    def get_product_name_power_module(self) -> str | None:
        return self.read_string32(regs.REG_PRODUCT_NAME_POWER_MODULE)

    def get_product_name_module(self, module: int) -> str | None:
        name = self.read_string32(regs.product_name_module_address(module))
        # Empty slots answer with a blank name.
        return name or None

    def get_product_name_quint(self) -> str | None:
        return self.read_string32(regs.REG_PRODUCT_NAME_QUINT)

    def get_num_connected_modules(self) -> int | None:
        return self.read_uint16(regs.REG_NUM_CONNECTED_MODULES)

    def get_global_status(self) -> GlobalStatus | None:
        bits = self.read_uint16(regs.REG_GLOBAL_STATUS)
        return None if bits is None else GlobalStatus.from_bits(bits)

    def get_total_system_current(self) -> int | None:
        return self.read_uint16(regs.REG_TOTAL_SYSTEM_CURRENT)

    def get_input_voltage(self) -> int | None:
        return self.read_uint16(regs.REG_INPUT_VOLTAGE)

    def get_sum_of_nominal_currents(self) -> int | None:
        return self.read_uint16(regs.REG_SUM_NOMINAL_CURRENTS)

    def get_internal_temperature(self) -> int | None:
        raw = self.read_uint16(regs.REG_INTERNAL_TEMPERATURE)
        return None if raw is None else to_int16(raw)

    def get_system_status(self) -> SystemStatus:
        return SystemStatus(
            global_status=self.get_global_status(),
            total_current=self.get_total_system_current(),
            input_voltage=self.get_input_voltage(),
            sum_nominal_currents=self.get_sum_of_nominal_currents(),
            internal_temperature=self.get_internal_temperature(),
        )

    def get_channel_status(self, module: int, channel: int) -> ChannelStatus | None:
        bits = self.read_uint16(regs.REG_CHANNEL_STATUS_BASE + regs.channel_offset(module, channel))
        return None if bits is None else ChannelStatus.from_bits(bits)

    def get_load_current(self, module: int, channel: int) -> int | None:
        return self.read_uint16(regs.REG_LOAD_CURRENT_BASE + regs.channel_offset(module, channel))

    def control_channel(self, module: int, channel: int, on: bool) -> bool:
        address = regs.REG_CHANNEL_CONTROL_BASE + regs.channel_offset(module, channel)
        return self.write_uint16(address, 1 if on else 0)

    def get_nominal_current(self, module: int, channel: int) -> int | None:
        return self.read_uint16(regs.REG_NOMINAL_CURRENT_BASE + regs.channel_offset(module, channel))

    def set_nominal_current(self, module: int, channel: int, amps: int) -> bool:
        return self.write_uint16(regs.REG_NOMINAL_CURRENT_BASE + regs.channel_offset(module, channel), amps)

    def device_info(self) -> str | None:
        count = self.get_num_connected_modules()
        if count is None:
            return None

        lines = [
            f"Power Module: {self.get_product_name_power_module() or '(unknown)'}",
            f"QUINT Power Supply: {self.get_product_name_quint() or '(unknown)'}",
            f"Connected modules: {count}",
        ]
        for module in range(1, min(count, regs.MAX_MODULES) + 1):
            name = self.get_product_name_module(module)
            lines.append(f"  Module {module}: {name or '(not installed)'}")
            if name is None:
                continue
            for channel in range(1, regs.CHANNELS_PER_MODULE + 1):
                nominal = self.get_nominal_current(module, channel)
                if nominal is None:
                    continue
                load = self.get_load_current(module, channel)
                load_text = "n/a" if load is None else f"{load / 1000.0:.1f} A"
                lines.append(f"    Channel {channel}: nominal {nominal} A, load {load_text}")
        return "\n".join(lines)


def create_connection(ip_address: str, port: int, timeout: float, slave_id: int = 1) -> CaparocDevice:
    device = CaparocDevice(ip_address, port, timeout, slave_id=slave_id)
    if not device.connect():
        device.close()
        raise ConnectionError(
            f"Failed to connect to device: {device.last_error}\n\nat {ip_address}:{port}"
        )
    return device
