"""Miner statistics as served by the monitoring API: JSON shapes and an HTML page."""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from hashminer.commondata import HexPrefix, get_formatted_hashes, get_formatted_memory, int_to_hex

__all__ = [
    "SolutionStats",
    "HwSensors",
    "MinerTelemetry",
    "Telemetry",
    "MinerInfo",
    "ConnectionInfo",
    "get_miner_stat1",
    "get_miner_stat_detail_per_miner",
    "get_miner_stat_detail",
    "get_http_miner_stat_detail",
]

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1

_HDR0_COLOR = "#e8e8e8"
_HDR1_COLOR = "#f0f0f0"
_ROW0_COLOR = "#f8f8f8"
_ROW1_COLOR = "#ffffff"
_ROWRED_COLOR = "#f46542"


@dataclass
class SolutionStats:
    """Counts of found solutions; ``tstamp`` is the monotonic time of the last one."""

    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    tstamp: float = field(default_factory=time.monotonic)


@dataclass
class HwSensors:
    """Hardware sensor readings of one device."""

    temp_c: int = 0
    fan_p: int = 0
    power_w: float = 0.0


@dataclass
class MinerTelemetry:
    """Hash rate, sensors and solutions of one miner, or of the whole farm."""

    hashrate: float = 0.0
    sensors: HwSensors = field(default_factory=HwSensors)
    solutions: SolutionStats = field(default_factory=SolutionStats)


@dataclass
class Telemetry:
    """A snapshot of the farm; ``start`` is the monotonic time mining began."""

    start: float = field(default_factory=time.monotonic)
    farm: MinerTelemetry = field(default_factory=MinerTelemetry)
    miners: list[MinerTelemetry] = field(default_factory=list)


@dataclass
class MinerInfo:
    """What the API reports about one mining device."""

    index: int = 0
    unique_id: str = ""
    device_type: str = "GPU"
    subscription: str = "OpenCL"
    cl_detected: bool = False
    cl_name: str = ""
    cu_name: str = ""
    total_memory: int = 0
    paused: bool = False
    pause_reason: str = ""


@dataclass
class ConnectionInfo:
    """The active pool connection and pool-side counters."""

    host: str = ""
    port: int = 0
    uri: str = ""
    connected: bool = False
    switches: int = 0
    epoch: int = 0
    epoch_changes: int = 0
    difficulty: float = 0.0


def _now(now: float | None) -> float:
    return time.monotonic() if now is None else now


def get_miner_stat1(
    telemetry: Telemetry,
    connection: ConnectionInfo,
    version: str,
    now: float | None = None,
) -> list[str]:
    """Return the nine strings of the classic ``miner_getstat1`` reply."""
    now = _now(now)
    farm = telemetry.farm
    running_minutes = int((now - telemetry.start) // 60)
    total_eth = (
        f"{farm.hashrate / 1000.0:.0f};{farm.solutions.accepted};{farm.solutions.rejected}"
    )
    detailed_eth = ";".join(f"{m.hashrate / 1000.0:.0f}" for m in telemetry.miners)
    detailed_dcr = ";".join("off" for _ in telemetry.miners)
    temps_and_fans = ";".join(f"{m.sensors.temp_c};{m.sensors.fan_p}" for m in telemetry.miners)
    return [
        version,
        str(running_minutes),
        total_eth,
        detailed_eth,
        "0;0;0",
        detailed_dcr,
        temps_and_fans,
        f"{connection.host}:{connection.port}",
        f"{farm.solutions.failed};0;0;0",
    ]


def get_miner_stat_detail_per_miner(
    telemetry: Telemetry,
    miner: MinerInfo,
    nonce_scrambler: int,
    segment_width: int,
    now: float | None = None,
) -> dict[str, Any]:
    """Return the detailed status of one miner."""
    now = _now(now)
    index = miner.index
    data = telemetry.miners[index]

    name = miner.cl_name if miner.cl_detected else miner.cu_name
    hardware = {
        "pci": miner.unique_id,
        "type": miner.device_type,
        "name": f"{name} {get_formatted_memory(float(miner.total_memory))}",
        "sensors": [data.sensors.temp_c, data.sensors.fan_p, data.sensors.power_w],
    }

    start_nonce = (nonce_scrambler + (index << segment_width)) & _MASK64
    end_nonce = (start_nonce + (1 << segment_width)) & _MASK64
    mining = {
        "shares": [
            data.solutions.accepted,
            data.solutions.rejected,
            data.solutions.failed,
            int(now - data.solutions.tstamp),
        ],
        "paused": miner.paused,
        "pause_reason": miner.pause_reason if miner.paused else None,
        "segment": [
            int_to_hex(start_nonce, 16, HexPrefix.ADD),
            int_to_hex(end_nonce, 16, HexPrefix.ADD),
        ],
        "hashrate": int_to_hex(int(data.hashrate) & _MASK32, 8, HexPrefix.ADD),
    }

    return {
        "_index": index,
        "_mode": "CUDA" if miner.subscription == "CUDA" else "OpenCL",
        "hardware": hardware,
        "mining": mining,
    }


def _host_name() -> str | None:
    try:
        return socket.gethostname()
    except OSError:
        return None


def get_miner_stat_detail(
    telemetry: Telemetry,
    miners: Sequence[MinerInfo],
    connection: ConnectionInfo,
    version: str,
    nonce_scrambler: int = 0,
    segment_width: int = 40,
    tstart: int = 0,
    tstop: int = 0,
    now: float | None = None,
    host_name: str | None = None,
) -> dict[str, Any]:
    """Return the farm-wide and per-device status reply of ``miner_getstatdetail``."""
    now = _now(now)
    farm = telemetry.farm

    host = {
        "version": version,
        "runtime": int(now - telemetry.start),
        "name": host_name if host_name is not None else _host_name(),
    }
    connection_info = {
        "uri": connection.uri,
        "connected": connection.connected,
        "switches": connection.switches,
    }
    mining = {
        "hashrate": int_to_hex(int(farm.hashrate) & _MASK32, 8, HexPrefix.ADD),
        "epoch": connection.epoch,
        "epoch_changes": connection.epoch_changes,
        "difficulty": connection.difficulty,
        "shares": [
            farm.solutions.accepted,
            farm.solutions.rejected,
            farm.solutions.failed,
            int(now - farm.solutions.tstamp),
        ],
    }
    monitors = {"temperatures": [tstart, tstop]} if tstop else None
    devices = [
        get_miner_stat_detail_per_miner(telemetry, miner, nonce_scrambler, segment_width, now)
        for miner in miners
    ]
    return {
        "devices": devices,
        "monitors": monitors,
        "connection": connection_info,
        "host": host,
        "mining": mining,
    }


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_http_miner_stat_detail(stat: dict[str, Any]) -> str:
    """Render a ``miner_getstatdetail`` reply as a small HTML status page."""
    duration = int(stat["host"]["runtime"])
    hours = duration // 3600
    minutes = (duration - hours * 3600) // 60

    parts = [
        "<!doctype html>",
        "<html lang=en>",
        "<head>",
        "<meta charset=utf-8>",
        '<meta http-equiv="refresh" content="30">',
        f"<title>{_as_string(stat['host']['name'])}</title>",
        "<style>",
        'body{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,',
        '"Helvetica Neue",Helvetica,Arial,sans-serif;font-size:16px;line-height:1.5;',
        "text-align:center;}",
        "table,td,th{border:1px inset #000;}",
        "table{border-spacing:0;}",
        "td,th{padding:3px;}",
        f"tbody tr:nth-child(even){{background-color:{_ROW0_COLOR};}}",
        f"tbody tr:nth-child(odd){{background-color:{_ROW1_COLOR};}}",
        ".mx-auto{margin-left:auto;margin-right:auto;}",
        f".bg-header1{{background-color:{_HDR1_COLOR};}}",
        f".bg-header0{{background-color:{_HDR0_COLOR};}}",
        f".bg-red{{color:{_ROWRED_COLOR};}}",
        ".right{text-align: right;}",
        "</style>",
        "<meta http-equiv=refresh content=30>",
        "</head>",
        "<body>",
        "<table class=mx-auto>",
        "<thead>",
        "<tr class=bg-header1>",
        f"<th colspan=9>{_as_string(stat['host']['version'])} - {hours}:{minutes:02d}",
        f"<br>Pool: {_as_string(stat['connection']['uri'])}</th>",
        "</tr>",
        "<tr class=bg-header0>",
        "<th>PCI</th>",
        "<th>Device</th>",
        "<th>Mode</th>",
        "<th>Paused</th>",
        "<th class=right>Hash Rate</th>",
        "<th class=right>Solutions</th>",
        "<th class=right>Temp.</th>",
        "<th class=right>Fan %</th>",
        "<th class=right>Power</th>",
        "</tr>",
        "</thead><tbody>",
    ]

    total_hashrate = 0.0
    total_power = 0.0
    total_solutions = 0

    for device in stat["devices"]:
        mining = device["mining"]
        hardware = device["hardware"]
        hashrate = float(int(mining["hashrate"], 16))
        power = float(hardware["sensors"][2])
        shares = mining["shares"]
        total_hashrate += hashrate
        total_power += power
        total_solutions += int(shares[0])
        paused = bool(mining["paused"])

        parts.append("<tr" + (' class="bg-red"' if paused else "") + ">")
        parts.append(f"<td>{_as_string(hardware['pci'])}</td>")
        parts.append(f"<td>{_as_string(hardware['name'])}</td>")
        parts.append(f"<td>{_as_string(device['_mode'])}</td>")
        reason = _as_string(mining["pause_reason"]) if paused else "No"
        parts.append(f"<td>{reason}</td>")
        parts.append(f"<td class=right>{get_formatted_hashes(hashrate)}</td>")
        solutions = f"A{shares[0]}:R{shares[1]}:F{shares[2]}"
        parts.append(f"<td class=right>{solutions}</td>")
        parts.append(f"<td class=right>{_as_string(hardware['sensors'][0])}</td>")
        parts.append(f"<td class=right>{_as_string(hardware['sensors'][1])}</td>")
        parts.append(f"<td class=right>{power:.2f}</td>")
        parts.append("</tr>")
    parts.append("</tbody>")

    parts.append(
        "<tfoot><tr class=bg-header0><td colspan=4 class=right>Total</td><td class=right>"
        f"{get_formatted_hashes(total_hashrate)}</td><td class=right>{total_solutions}"
        f"</td><td colspan=3 class=right>{total_power:.2f}</td></tfoot>"
    )
    parts.append("</table></body></html>")
    return "".join(parts)