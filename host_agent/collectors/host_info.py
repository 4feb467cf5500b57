"""Host description used for registration."""

import ipaddress
import platform
import socket
import sys
from typing import Any, Dict, Optional

import psutil


def primary_ipv4() -> Optional[str]:
    """Return the first non-loopback IPv4 address, if any."""
    for addresses in psutil.net_if_addrs().values():
        for addr in addresses:
            if addr.family != socket.AF_INET:
                continue
            try:
                if ipaddress.ip_address(addr.address).is_loopback:
                    continue
            except ValueError:
                continue
            return addr.address
    return None


def collect_host_info(hostname: Optional[str] = None) -> Dict[str, Any]:
    """
    Collect registration data for this host.

    Args:
        hostname: Configured hostname; detected when None

    Returns:
        dict: hostname, ip_address, os, os_version and platform metadata
    """
    return {
        "hostname": hostname or socket.gethostname(),
        "ip_address": primary_ipv4(),
        "os": f"{platform.system()} {platform.release()}",
        "os_version": platform.version(),
        "metadata": {
            "platform": sys.platform,
            "arch": platform.machine(),
            "cpus": psutil.cpu_count() or 0,
            "total_memory": psutil.virtual_memory().total,
        },
    }
