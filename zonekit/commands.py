"""Remote command construction for kitchen-zone.

Every command is an argument list; nothing configured or generated is ever
spliced into a shell string.
"""

from __future__ import annotations

from typing import List

from zonekit.constants import IPNAT, ZLOGIN, ZONEADM, ZONECFG


def mkdir_p(path: str) -> List[str]:
    return ["mkdir", "-p", path]


def mktemp_dir(parent: str) -> List[str]:
    return ["mktemp", "-d", "-p", parent]


def remove_tree(path: str) -> List[str]:
    return ["rm", "-rf", path]


def zonecfg_apply(zone: str, config_file: str) -> List[str]:
    return [ZONECFG, "-z", zone, "-f", config_file]


def zoneadm_clone(zone: str, profile_file: str, template: str) -> List[str]:
    return [ZONEADM, "-z", zone, "clone", "-c", profile_file, template]


def zoneadm_boot(zone: str) -> List[str]:
    return [ZONEADM, "-z", zone, "boot"]


def zoneadm_halt(zone: str) -> List[str]:
    return [ZONEADM, "-z", zone, "halt"]


def zoneadm_uninstall(zone: str) -> List[str]:
    return [ZONEADM, "-z", zone, "uninstall", "-F"]


def zonecfg_delete(zone: str) -> List[str]:
    return [ZONECFG, "-z", zone, "delete", "-F"]


def show_addr(zone: str) -> List[str]:
    return [ZLOGIN, zone, "ipadm", "show-addr"]


def nat_rule(interface: str, port: int, address: str, zone_port: int) -> str:
    return f"rdr {interface} 0.0.0.0/0 port {port} -> {address} port {zone_port}\n"


def nat_install() -> List[str]:
    # The rule itself is fed on stdin.
    return [IPNAT, "-f", "-"]


def nat_remove() -> List[str]:
    return [IPNAT, "-r", "-f", "-"]


def nat_list() -> List[str]:
    return [IPNAT, "-l"]
