from types import SimpleNamespace

import pytest
from pymodbus.exceptions import ConnectionException

import caparoc_device
from caparoc_device import (
    CaparocDevice,
    ChannelStatus,
    GlobalStatus,
    create_connection,
    words_to_string,
    words_to_uint32,
)


class StubClient:
    """Answers holding-register and coil requests from plain dicts."""

    def __init__(self, words=None, coils=None, connect_ok=True):
        self.words = dict(words or {})
        self.coils = dict(coils or {})
        self.connect_ok = connect_ok
        self.writes = []
        self.closed = False
        self.raise_on_read = None

    def connect(self):
        return self.connect_ok

    def close(self):
        self.closed = True

    @staticmethod
    def _ok(**fields):
        return SimpleNamespace(isError=lambda: False, **fields)

    def read_holding_registers(self, address, count=1, slave=1):
        if self.raise_on_read is not None:
            raise self.raise_on_read
        if address not in self.words:
            return ErrorResponse("Exception Response(131, 3, IllegalAddress)")
        return self._ok(registers=[self.words.get(address + i, 0) for i in range(count)])

    def write_register(self, address, value, slave=1):
        self.writes.append((address, [value], slave))
        return self._ok()

    def write_registers(self, address, values, slave=1):
        self.writes.append((address, list(values), slave))
        return self._ok()

    def read_coils(self, address, count=1, slave=1):
        if address not in self.coils:
            return ErrorResponse("Exception Response(129, 1, IllegalAddress)")
        return self._ok(bits=[self.coils[address]] + [False] * 7)

    def write_coil(self, address, value, slave=1):
        self.writes.append((address, value, slave))
        return self._ok()


class ErrorResponse:
    def __init__(self, text):
        self.text = text

    def isError(self):
        return True

    def __str__(self):
        return self.text


def _device(**stub_kwargs):
    dev = CaparocDevice("127.0.0.1", 5020, 0.5)
    dev.client = StubClient(**stub_kwargs)
    return dev


def test_words_to_string_stops_at_nul() -> None:
    words = [0x4341, 0x5041, 0x524F, 0x4300, 0x4142]
    assert words_to_string(words) == "CAPAROC"


def test_words_to_uint32_high_word_first() -> None:
    assert words_to_uint32([0x1234, 0x5678]) == 0x12345678


def test_read_uint16_and_missing_register() -> None:
    dev = _device(words={0x2000: 4})
    assert dev.read_uint16(0x2000) == 4
    assert dev.read_uint16(0x2001) is None
    assert "IllegalAddress" in dev.last_error


def test_read_string32_reads_sixteen_words() -> None:
    name = b"CAPAROC PM".ljust(32, b"\x00")
    words = {0x1000 + i: int.from_bytes(name[2 * i:2 * i + 2], "big") for i in range(16)}
    dev = _device(words=words)
    assert dev.read_string32(0x1000) == "CAPAROC PM"
    assert dev.get_product_name_power_module() == "CAPAROC PM"


def test_modbus_exception_becomes_absent_value() -> None:
    dev = _device(words={0x2000: 1})
    dev.client.raise_on_read = ConnectionException("socket closed")
    assert dev.read_uint32(0x2000) is None
    assert "socket closed" in dev.last_error


def test_write_uint32_splits_words() -> None:
    dev = _device()
    assert dev.write_uint32(0x0100, 0xDEADBEEF) is True
    assert dev.client.writes == [(0x0100, [0xDEAD, 0xBEEF], 1)]


def test_status_decoding() -> None:
    dev = _device(words={0x2001: 0b10010, 0x3000 + 5: 0b1000010, 0x2005: 0xFFFB})
    assert dev.get_global_status() == GlobalStatus(overvoltage=True, system_current_too_high=True)
    assert dev.get_channel_status(2, 2) == ChannelStatus(overload=True, system_current_too_high=True)
    assert dev.get_internal_temperature() == -5


def test_system_status_keeps_partial_reads() -> None:
    dev = _device(words={0x2003: 2400})
    status = dev.get_system_status()
    assert status.global_status is None
    assert status.input_voltage == 2400
    assert status.total_current is None


def test_control_channel_and_nominal_current_addresses() -> None:
    dev = _device()
    dev.control_channel(1, 4, True)
    dev.set_nominal_current(3, 1, 10)
    assert dev.client.writes == [(0x3203, [1], 1), (0xC018, [10], 1)]


def test_coils_use_slave_id() -> None:
    dev = _device(coils={7: True})
    assert dev.set_slave_id(9) is True
    assert dev.read_coil(7) is True
    assert dev.read_coil(8) is None
    assert dev.write_coil(7, False) is True
    assert dev.client.writes == [(7, False, 9)]
    assert dev.set_slave_id(300) is False


def test_empty_module_slot_reads_as_absent() -> None:
    dev = _device(words={0x1010 + i: 0 for i in range(16)})
    assert dev.get_product_name_module(1) is None


def test_device_info_lists_modules() -> None:
    pm = b"PM".ljust(32, b"\x00")
    m1 = b"E4".ljust(32, b"\x00")
    words = {0x2000: 1, 0xC010: 6, 0x3100: 1500}
    words.update({0x1000 + i: int.from_bytes(pm[2 * i:2 * i + 2], "big") for i in range(16)})
    words.update({0x1010 + i: int.from_bytes(m1[2 * i:2 * i + 2], "big") for i in range(16)})
    info = _device(words=words).device_info()
    assert "Power Module: PM" in info
    assert "QUINT Power Supply: (unknown)" in info
    assert "  Module 1: E4" in info
    assert "    Channel 1: nominal 6 A, load 1.5 A" in info
    assert "Channel 2" not in info


def test_create_connection_failure(monkeypatch) -> None:
    monkeypatch.setattr(caparoc_device, "ModbusTcpClient", lambda *a, **kw: StubClient(connect_ok=False))
    with pytest.raises(ConnectionError) as excinfo:
        create_connection("10.1.2.3", 502, 1.0)
    assert "Failed to connect to device" in str(excinfo.value)
    assert "at 10.1.2.3:502" in str(excinfo.value)


def test_invalid_slave_id_rejected() -> None:
    with pytest.raises(ValueError):
        CaparocDevice("127.0.0.1", 502, 1.0, slave_id=248)
