from __future__ import annotations

import asyncio

import pytest

from extruder.app.config import ExtruderConfig
from extruder.cli import main as main_mod
from extruder.cli.args import parse_args
from extruder.cli.commands import format_record, list_ports_async, monitor_async
from extruder.core.errors import (
    DeviceConnectError,
    DeviceDisconnectError,
    PortEnumerationError,
    PreconditionError,
    WakeupError,
)
from extruder.model.record import PortDescriptor
from extruder.transport.errors import TransportEnumerationError, TransportIOError, TransportOpenError


def test_parse_monitor_args():
    args = parse_args(["monitor", "-p", "COM4", "--baud", "9600", "--secs", "2", "--wakeup"])

    assert args.cmd == "monitor"
    assert args.port == "COM4"
    assert args.baud == "9600"
    assert args.secs == 2.0
    assert args.wakeup is True


def test_parse_rejects_non_positive_secs():
    with pytest.raises(SystemExit):
        parse_args(["monitor", "--secs", "0"])


def test_ports_lists_names_and_kinds(link, capsys):
    link.ports = [PortDescriptor("COM3", "USB"), PortDescriptor("COM1", "PCI")]

    rc = asyncio.run(list_ports_async(ExtruderConfig(), link=link))

    out = capsys.readouterr().out
    assert rc == 0
    assert "COM3\tUSB" in out
    assert "COM1\tPCI" in out


def test_ports_failure_raises_enumeration_error(link):
    link.fail_list = TransportEnumerationError("denied")

    with pytest.raises(PortEnumerationError) as ei:
        asyncio.run(list_ports_async(ExtruderConfig(), link=link))

    assert ei.value.message == "Failed to load ports: denied"
    assert ei.value.code == "port_enumeration_error"


def test_monitor_prints_records_until_deadline(link, record_factory, capsys):
    async def scenario():
        task = asyncio.create_task(
            monitor_async(ExtruderConfig(), secs=0.05, link=link, poll_s=0.01)
        )
        await asyncio.sleep(0.01)
        link.emit("data-row", record_factory(7.0))
        return await task

    rc = asyncio.run(scenario())

    out = capsys.readouterr().out
    assert rc == 0
    assert "Connected to COM3 @ 115200" in out
    assert "t=     7.0" in out
    assert "Received 1 record(s)" in out
    assert link.bus.listener_count() == 0


def test_monitor_connect_failure_raises(link):
    link.fail_open = TransportOpenError("Failed to open port: busy")

    with pytest.raises(DeviceConnectError) as ei:
        asyncio.run(monitor_async(ExtruderConfig(port="COM3"), secs=0.01, link=link))

    assert ei.value.message == "Connection failed: Failed to open port: busy"
    assert ei.value.details["port"] == "COM3"
    assert link.bus.listener_count() == 0


def test_monitor_without_any_port_is_precondition_error(link):
    link.ports = []

    with pytest.raises(PreconditionError) as ei:
        asyncio.run(monitor_async(ExtruderConfig(), secs=0.01, link=link))

    assert ei.value.message == "Please select a port"
    assert link.call_names() == ["list_ports"]


def test_monitor_wakeup_failure_raises_and_disconnects(link):
    link.fail_wakeup = TransportIOError("write timeout")

    with pytest.raises(WakeupError) as ei:
        asyncio.run(monitor_async(ExtruderConfig(port="COM3"), secs=5, wakeup=True, link=link))

    assert ei.value.message == "Wakeup failed: write timeout"
    assert link.call_names() == ["open", "send_wakeup", "close"]
    assert link.bus.listener_count() == 0


def test_monitor_transport_error_raises_disconnect_error(link):
    async def scenario():
        task = asyncio.create_task(
            monitor_async(ExtruderConfig(port="COM3"), secs=5, link=link, poll_s=0.01)
        )
        await asyncio.sleep(0.01)
        link.emit("serial-error", "Error reading: unplugged")
        return await task

    with pytest.raises(DeviceDisconnectError) as ei:
        asyncio.run(scenario())

    assert ei.value.message == "Error reading: unplugged"
    assert link.bus.listener_count() == 0


def test_main_maps_command_errors_to_exit_code(monkeypatch, capsys):
    def failing_ports(cfg):
        raise PortEnumerationError("Failed to load ports: denied", hint="Check permissions.")

    monkeypatch.setattr(main_mod, "cmd_ports", failing_ports)

    rc = main_mod.main(["ports"])

    out = capsys.readouterr().out
    assert rc == 1
    assert "ERROR: Failed to load ports: denied" in out
    assert "Hint: Check permissions." in out


def test_format_record_marks_fault(record_factory):
    assert format_record(record_factory(1.0, fault=1)).endswith("FAULT")
    assert "FAULT" not in format_record(record_factory(1.0))


def test_main_reports_config_error(tmp_path, capsys):
    bad = tmp_path / "bad.yml"
    bad.write_text("nope: 1\n", encoding="utf-8")

    rc = main_mod.main(["ports", "--config", str(bad)])

    out = capsys.readouterr().out
    assert rc == 1
    assert "ERROR: Unknown config key 'nope'." in out
    assert "Hint:" in out


def test_main_dispatches_monitor(monkeypatch):
    seen = {}

    def fake_monitor(cfg, *, secs, wakeup):
        seen.update(cfg=cfg, secs=secs, wakeup=wakeup)
        return 0

    monkeypatch.setattr(main_mod, "cmd_monitor", fake_monitor)

    rc = main_mod.main(["monitor", "--port", "COM8", "--baud", "9600", "--secs", "1"])

    assert rc == 0
    assert seen["cfg"].port == "COM8"
    assert seen["cfg"].baud_rate == "9600"
    assert seen["secs"] == 1.0
    assert seen["wakeup"] is False
