#!/usr/bin/env python3
"""
Offline catalogue of the CAPAROC Modbus registers used by caparoc_commander.

Addresses are holding-register offsets. Per-channel registers are laid out
as base + (module - 1) * CHANNELS_PER_MODULE + (channel - 1).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

CHANNELS_PER_MODULE = 4
MAX_MODULES = 16

STRING32_WORDS = 16

# Write-only command registers, written with CMD_EXECUTE.
REG_RESET_APP_PARAMS_POWER_AND_CB = 0x0010
REG_GLOBAL_CHANNEL_ERROR_RESET_ALL_CB = 0x0011
REG_ERROR_COUNTER_RESET_ALL_CB = 0x0012
REG_RESET_APP_PARAMS_QUINT = 0x0013
CMD_EXECUTE = 0x0001

REG_OPERATING_HOURS = 0x0100

REG_PRODUCT_NAME_POWER_MODULE = 0x1000
REG_PRODUCT_NAME_MODULE_BASE = 0x1010
REG_PRODUCT_NAME_QUINT = 0x1110

REG_NUM_CONNECTED_MODULES = 0x2000
REG_GLOBAL_STATUS = 0x2001
REG_TOTAL_SYSTEM_CURRENT = 0x2002
REG_INPUT_VOLTAGE = 0x2003
REG_SUM_NOMINAL_CURRENTS = 0x2004
REG_INTERNAL_TEMPERATURE = 0x2005

REG_CHANNEL_STATUS_BASE = 0x3000
REG_LOAD_CURRENT_BASE = 0x3100
REG_CHANNEL_CONTROL_BASE = 0x3200

REG_GLOBAL_LOCK = 0xC001
REG_NOMINAL_CURRENT_BASE = 0xC010
REG_CHANNEL_LOCK_BASE = 0xC090


class RegisterAccess(Enum):
    READ_ONLY = "RO"
    WRITE_ONLY = "WO"
    READ_WRITE = "RW"


class RegisterType(Enum):
    UINT16 = "UINT16"
    INT16 = "INT16"
    UINT32 = "UINT32"
    STRING32 = "STRING32"


@dataclass(frozen=True)
class Register:
    address: int
    name: str
    access: RegisterAccess
    type: RegisterType
    description: str

    @property
    def words(self) -> int:
        if self.type == RegisterType.UINT32:
            return 2
        if self.type == RegisterType.STRING32:
            return STRING32_WORDS
        return 1


def channel_offset(module: int, channel: int) -> int:
    return (module - 1) * CHANNELS_PER_MODULE + (channel - 1)


def product_name_module_address(module: int) -> int:
    return REG_PRODUCT_NAME_MODULE_BASE + (module - 1) * STRING32_WORDS


def _per_channel(base: int, name: str, access: RegisterAccess, description: str) -> list[Register]:
    regs = []
    for module in range(1, MAX_MODULES + 1):
        for channel in range(1, CHANNELS_PER_MODULE + 1):
            regs.append(Register(
                address=base + channel_offset(module, channel),
                name=f"{name}_M{module}_CH{channel}",
                access=access,
                type=RegisterType.UINT16,
                description=f"{description} (module {module}, channel {channel})",
            ))
    return regs


def _build_registers() -> list[Register]:
    RO, WO, RW = RegisterAccess.READ_ONLY, RegisterAccess.WRITE_ONLY, RegisterAccess.READ_WRITE
    U16, I16, U32, S32 = RegisterType.UINT16, RegisterType.INT16, RegisterType.UINT32, RegisterType.STRING32

    regs = [
        Register(REG_RESET_APP_PARAMS_POWER_AND_CB, "RESET_APP_PARAMS_POWER_AND_CB", WO, U16,
                 "Reset application parameters of Power Module and Circuit Breakers"),
        Register(REG_GLOBAL_CHANNEL_ERROR_RESET_ALL_CB, "GLOBAL_CHANNEL_ERROR_RESET_ALL_CB", WO, U16,
                 "Global channel error reset for all Circuit Breakers"),
        Register(REG_ERROR_COUNTER_RESET_ALL_CB, "ERROR_COUNTER_RESET_ALL_CB", WO, U16,
                 "Reset error counters of all Circuit Breakers"),
        Register(REG_RESET_APP_PARAMS_QUINT, "RESET_APP_PARAMS_QUINT", WO, U16,
                 "Reset application parameters of QUINT Power Supply"),
        Register(REG_OPERATING_HOURS, "OPERATING_HOURS", RO, U32, "Operating hours counter"),
        Register(REG_PRODUCT_NAME_POWER_MODULE, "PRODUCT_NAME_POWER_MODULE", RO, S32,
                 "Product name of the Power Module"),
    ]
    for module in range(1, MAX_MODULES + 1):
        regs.append(Register(product_name_module_address(module), f"PRODUCT_NAME_MODULE_{module}", RO, S32,
                             f"Product name of module {module}"))
    regs += [
        Register(REG_PRODUCT_NAME_QUINT, "PRODUCT_NAME_QUINT", RO, S32, "Product name of the QUINT Power Supply"),
        Register(REG_NUM_CONNECTED_MODULES, "NUM_CONNECTED_MODULES", RO, U16, "Number of currently connected modules"),
        Register(REG_GLOBAL_STATUS, "GLOBAL_STATUS", RO, U16, "Global status bits"),
        Register(REG_TOTAL_SYSTEM_CURRENT, "TOTAL_SYSTEM_CURRENT", RO, U16, "Total system current in A"),
        Register(REG_INPUT_VOLTAGE, "INPUT_VOLTAGE", RO, U16, "Input voltage in 10 mV"),
        Register(REG_SUM_NOMINAL_CURRENTS, "SUM_NOMINAL_CURRENTS", RO, U16, "Sum of nominal currents in A"),
        Register(REG_INTERNAL_TEMPERATURE, "INTERNAL_TEMPERATURE", RO, I16, "Internal temperature in degC"),
        Register(REG_GLOBAL_LOCK, "GLOBAL_NOMINAL_CURRENT_LOCK", RW, U16,
                 "Global lock of nominal current parametrization"),
    ]
    regs += _per_channel(REG_CHANNEL_STATUS_BASE, "CHANNEL_STATUS", RO, "Channel status bits")
    regs += _per_channel(REG_LOAD_CURRENT_BASE, "LOAD_CURRENT", RO, "Actual load current in mA")
    regs += _per_channel(REG_CHANNEL_CONTROL_BASE, "CHANNEL_CONTROL", RW, "Channel on/off control")
    regs += _per_channel(REG_NOMINAL_CURRENT_BASE, "NOMINAL_CURRENT", RW, "Nominal current in A")
    regs += _per_channel(REG_CHANNEL_LOCK_BASE, "CHANNEL_NOMINAL_CURRENT_LOCK", RW,
                         "Channel lock of nominal current parametrization")
    return sorted(regs, key=lambda r: r.address)


REGISTERS: tuple[Register, ...] = tuple(_build_registers())
REGISTERS_BY_ADDRESS = {reg.address: reg for reg in REGISTERS}


def lookup_register(address: int) -> Register | None:
    return REGISTERS_BY_ADDRESS.get(address)


def find_registers(text: str) -> list[Register]:
    needle = text.strip().lower()
    return [
        reg for reg in REGISTERS
        if needle in reg.name.lower() or needle in reg.description.lower()
    ]


def format_register_line(reg: Register) -> str:
    return f"[0x{reg.address:04X}] {reg.access.value} | {reg.name} - {reg.description}"


def list_all_registers() -> str:
    lines = [f"  {format_register_line(reg)} ({reg.type.value})" for reg in REGISTERS]
    lines.append(f"Total registers: {len(REGISTERS)}")
    return "\n".join(lines)


def get_register_info(address: int) -> str:
    reg = lookup_register(address)
    if reg is None:
        return f"Register 0x{address:04X} not found"
    return "\n".join([
        f"Name: {reg.name}",
        f"Address: 0x{reg.address:04X}",
        f"Access: {reg.access.value}",
        f"Type: {reg.type.value} ({reg.words} word{'s' if reg.words > 1 else ''})",
        f"Description: {reg.description}",
    ])
