"""
Pytest fixtures for caparoc_commander tests.
"""
import pytest

from caparoc_device import ChannelStatus, GlobalStatus, SystemStatus


class FakeDevice:
    """In-memory stand-in for CaparocDevice; records every call in `calls`."""

    def __init__(self):
        self.calls = []
        self.last_error = ""
        self.registers = {}
        self.strings = {}
        self.coils = {}
        self.failing_writes = set()
        self.slave_id_ok = True
        self.module_names = {}
        self.channel_bits = {}
        self.load_currents = {}
        self.nominal_currents = {}
        self.control_ok = True
        self.reset_ok = True
        self.system_status = SystemStatus()
        self.info = None
        self.closed = False

    def close(self):
        self.closed = True

    def set_slave_id(self, slave_id):
        self.calls.append(("set_slave_id", slave_id))
        if not self.slave_id_ok:
            self.last_error = "slave id rejected"
        return self.slave_id_ok

    def read_uint16(self, address):
        self.calls.append(("read_uint16", address))
        return self.registers.get(address)

    def read_uint32(self, address):
        self.calls.append(("read_uint32", address))
        return self.registers.get(address)

    def read_string32(self, address):
        self.calls.append(("read_string32", address))
        return self.strings.get(address)

    def write_uint16(self, address, value):
        self.calls.append(("write_uint16", address, value))
        if address in self.failing_writes:
            return False
        self.registers[address] = value
        return True

    def write_uint32(self, address, value):
        self.calls.append(("write_uint32", address, value))
        if address in self.failing_writes:
            return False
        self.registers[address] = value
        return True

    def read_coil(self, address):
        self.calls.append(("read_coil", address))
        if address not in self.coils:
            self.last_error = "Illegal data address"
            return None
        return self.coils[address]

    def write_coil(self, address, state):
        self.calls.append(("write_coil", address, state))
        if address in self.failing_writes:
            self.last_error = "Illegal data address"
            return False
        self.coils[address] = state
        return True

    def reset_application_params_power_and_cb(self):
        self.calls.append(("reset_application_params_power_and_cb",))
        return self.reset_ok

    def global_channel_error_reset_all_cb(self):
        self.calls.append(("global_channel_error_reset_all_cb",))
        return self.reset_ok

    def error_counter_reset_all_cb(self):
        self.calls.append(("error_counter_reset_all_cb",))
        return self.reset_ok

    def reset_application_params_quint(self):
        self.calls.append(("reset_application_params_quint",))
        return self.reset_ok

    def get_product_name_power_module(self):
        self.calls.append(("get_product_name_power_module",))
        return self.module_names.get("power")

    def get_product_name_module(self, module):
        self.calls.append(("get_product_name_module", module))
        return self.module_names.get(module)

    def get_product_name_quint(self):
        self.calls.append(("get_product_name_quint",))
        return self.module_names.get("quint")

    def get_num_connected_modules(self):
        self.calls.append(("get_num_connected_modules",))
        return self.registers.get(0x2000)

    def get_nominal_current(self, module, channel):
        self.calls.append(("get_nominal_current", module, channel))
        return self.nominal_currents.get((module, channel))

    def set_nominal_current(self, module, channel, amps):
        self.calls.append(("set_nominal_current", module, channel, amps))
        self.nominal_currents[(module, channel)] = amps
        return True

    def get_channel_status(self, module, channel):
        self.calls.append(("get_channel_status", module, channel))
        bits = self.channel_bits.get((module, channel))
        return None if bits is None else ChannelStatus.from_bits(bits)

    def get_load_current(self, module, channel):
        self.calls.append(("get_load_current", module, channel))
        return self.load_currents.get((module, channel))

    def control_channel(self, module, channel, on):
        self.calls.append(("control_channel", module, channel, on))
        return self.control_ok

    def get_system_status(self):
        self.calls.append(("get_system_status",))
        return self.system_status

    def device_info(self):
        self.calls.append(("device_info",))
        if self.info is None:
            self.last_error = "Connection reset by peer"
        return self.info


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def healthy_status():
    return SystemStatus(
        global_status=GlobalStatus(overvoltage=True),
        total_current=12,
        input_voltage=2405,
        sum_nominal_currents=20,
        internal_temperature=-3,
    )
