"""Zone configuration and system profile rendering for kitchen-zone."""

from __future__ import annotations

from typing import List
from xml.etree.ElementTree import Element, SubElement, tostring

from zonekit.exceptions import ZoneError
from zonekit.models import ProfileParams, ZoneConfigParams

PROFILE_DOCTYPE = '<!DOCTYPE service_bundle SYSTEM "/usr/share/lib/xml/dtd/service_bundle.dtd.1">'


def _require(label: str, **values: str) -> None:
    for name, value in values.items():
        if value is None or not str(value).strip():
            raise ZoneError(f"{label}: '{name}' must not be empty")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return f'"{escaped}"'


def render_zone_config(params: ZoneConfigParams) -> str:
    """Render the zonecfg command file for ``zonecfg -z <zone> -f``."""
    _require("zone config", zone_path=params.zone_path, zone_lower_link=params.zone_lower_link)
    lines: List[str] = [
        "create -b",
        "set brand=solaris",
        f"set zonepath={params.zone_path}",
        "set autoboot=false",
        "set ip-type=exclusive",
    ]
    if params.zone_comment:
        lines += [
            "add attr",
            "set name=comment",
            "set type=string",
            f"set value={_quote(params.zone_comment)}",
            "end",
        ]
    lines += [
        "add anet",
        "set linkname=net0",
        f"set lower-link={params.zone_lower_link}",
        "end",
        "verify",
        "commit",
    ]
    return "\n".join(lines) + "\n"


def _propval(parent: Element, name: str, value: str, type_: str = "astring") -> None:
    SubElement(parent, "propval", name=name, type=type_, value=value)


def _element_to_str(root: Element) -> str:
    from xml.dom.minidom import parseString

    raw = tostring(root, encoding="unicode")
    return parseString(raw).documentElement.toprettyxml(indent="  ").strip()


def render_profile(params: ProfileParams) -> str:
    """Render the SMF system configuration profile consumed by ``zoneadm clone -c``."""
    _require(
        "profile",
        zone_name=params.zone_name,
        kitchen_user_name=params.kitchen_user_name,
        ssh_public_key=params.ssh_public_key,
        password_hash=params.password_hash,
    )
    bundle = Element("service_bundle", type="profile", name=params.zone_name)

    identity = SubElement(bundle, "service", name="system/identity", version="1", type="service")
    node = SubElement(identity, "instance", name="node", enabled="true")
    group = SubElement(node, "property_group", name="config", type="application")
    _propval(group, "nodename", params.zone_name)

    install = SubElement(bundle, "service", name="network/install", version="1", type="service")
    default = SubElement(install, "instance", name="default", enabled="true")
    group = SubElement(default, "property_group", name="install_ipv4_interface", type="application")
    _propval(group, "name", "net0/v4")
    _propval(group, "address_type", "dhcp")

    physical = SubElement(bundle, "service", name="network/physical", version="1", type="service")
    default = SubElement(physical, "instance", name="default", enabled="true")
    group = SubElement(default, "property_group", name="netcfg", type="application")
    _propval(group, "active_ncp", "DefaultFixed")

    users = SubElement(bundle, "service", name="system/config-user", version="1", type="service")
    default = SubElement(users, "instance", name="default", enabled="true")
    root = SubElement(default, "property_group", name="root_account", type="application")
    _propval(root, "login", "root")
    _propval(root, "password", params.password_hash)
    _propval(root, "type", "role")
    account = SubElement(default, "property_group", name="user_account", type="application")
    _propval(account, "login", params.kitchen_user_name)
    _propval(account, "password", params.password_hash)
    _propval(account, "type", "normal")
    _propval(account, "description", params.kitchen_user_name)
    _propval(account, "gid", "10", type_="count")
    _propval(account, "shell", "/usr/bin/bash")
    _propval(account, "roles", "root")
    _propval(account, "profiles", "System Administrator")
    _propval(account, "sudoers", "ALL=(ALL) NOPASSWD: ALL")
    keys = SubElement(account, "property", name="ssh_public_keys", type="astring")
    key_list = SubElement(keys, "astring_list")
    SubElement(key_list, "value_node", value=params.ssh_public_key.strip())

    return '<?xml version="1.0" ?>\n' + PROFILE_DOCTYPE + "\n" + _element_to_str(bundle) + "\n"
