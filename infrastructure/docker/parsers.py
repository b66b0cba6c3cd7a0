"""
Parsers for ``docker ps`` / ``docker inspect`` / ``docker stats`` output and
the label-driven URL templating used to link a container to its web UI.
"""

import logging
import math
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from domain.entities.container import Container, PortMapping
from shared.constants import (
    DEFAULT_HOST_IP,
    DEFAULT_PROTOCOL,
    DEFAULT_URL_HOST,
    LABEL_ICON,
    LABEL_WEBUI,
)

logger = logging.getLogger(__name__)

_PORT_SEGMENT = re.compile(r"([^:]+)?:?(\d+)->(\d+)(?:/([a-z]+))?", re.IGNORECASE)
_IP_PLACEHOLDER = re.compile(r"\[IP\]", re.IGNORECASE)
_PORT_PLACEHOLDER = re.compile(r"\[PORT:(\d+)\]", re.IGNORECASE)
_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
_HUMAN_BYTES = re.compile(r"^([\d.]+)\s*([kKmMgGtTpP]?i?[bB])?")

_BYTE_MULTIPLIERS = {
    "b": 1,
    "kb": 1e3,
    "mb": 1e6,
    "gb": 1e9,
    "tb": 1e12,
    "kib": 1024,
    "mib": 1024 ** 2,
    "gib": 1024 ** 3,
    "tib": 1024 ** 4,
}


# ── docker ps fields ──────────────────────────────────────────────────────


def parse_ports(raw_ports: Optional[str]) -> List[PortMapping]:
    """Parse the ``Ports`` column, e.g. ``0.0.0.0:8080->80/tcp, 443/tcp``."""
    if not raw_ports:
        return []

    mappings: List[PortMapping] = []
    for segment in raw_ports.split(","):
        segment = segment.strip()
        if not segment:
            continue
        match = _PORT_SEGMENT.search(segment)
        if not match:
            mappings.append(PortMapping(display=segment))
            continue

        raw_ip, host_port, container_port, protocol = match.groups()
        host_ip = raw_ip if raw_ip and "." in raw_ip else DEFAULT_HOST_IP
        protocol = (protocol or DEFAULT_PROTOCOL).lower()
        mappings.append(
            PortMapping(
                display=f"{host_port}->{container_port}/{protocol}",
                host_ip=host_ip,
                host_port=host_port,
                container_port=container_port,
                protocol=protocol,
            )
        )
    return mappings


def parse_labels(raw_labels: Optional[str]) -> Dict[str, str]:
    """Parse the ``Labels`` column (``k=v,k2=v2``)."""
    if not raw_labels:
        return {}

    labels: Dict[str, str] = {}
    for pair in raw_labels.split(","):
        key, sep, value = pair.strip().partition("=")
        if not sep:
            continue
        key, value = key.strip(), value.strip()
        if key and value:
            labels[key] = value
    return labels


def resolve_container_ip(details: Optional[dict]) -> Optional[str]:
    """Container IP from ``docker inspect`` output, if it has one."""
    if not isinstance(details, dict):
        return None
    network_settings = details.get("NetworkSettings")
    if not isinstance(network_settings, dict):
        return None

    direct = network_settings.get("IPAddress")
    if direct:
        return direct

    networks = network_settings.get("Networks")
    if isinstance(networks, dict):
        for network in networks.values():
            if isinstance(network, dict) and network.get("IPAddress"):
                return network["IPAddress"]
    return None


# ── URL templating ────────────────────────────────────────────────────────


def apply_template(
    value: Optional[str],
    ports: List[PortMapping],
    container_ip: Optional[str] = None,
    fallback_host: Optional[str] = None,
) -> Optional[str]:
    """
    Expand the two placeholders supported in web UI / icon labels.

    ``[IP]`` becomes the container IP (or the fallback host, or localhost).
    ``[PORT:n]`` becomes the published host port whose container port - or
    failing that, host port - equals ``n``; otherwise ``n`` itself.
    """
    if not value or not isinstance(value, str):
        return value

    resolved_ip = container_ip or fallback_host or DEFAULT_URL_HOST
    output = _IP_PLACEHOLDER.sub(lambda _m: resolved_ip, value)

    def _port(match: re.Match) -> str:
        port_num = int(match.group(1))
        for attr in ("container_port", "host_port"):
            for mapping in ports:
                if _as_int(getattr(mapping, attr)) == port_num and mapping.host_port:
                    return mapping.host_port
        return str(port_num)

    return _PORT_PLACEHOLDER.sub(_port, output)


def normalize_url(url: Optional[str], fallback_host: Optional[str] = None) -> Optional[str]:
    """Turn a label value into an absolute http(s) URL, or None if it is not one."""
    if not url or not isinstance(url, str):
        return None
    trimmed = url.strip()
    if not trimmed:
        return None

    if _ABSOLUTE_URL.match(trimmed):
        candidate = trimmed
    elif trimmed.startswith("//"):
        candidate = f"http:{trimmed}"
    elif trimmed.startswith("/"):
        candidate = f"http://{fallback_host or DEFAULT_URL_HOST}{trimmed}"
    else:
        candidate = f"http://{trimmed}"

    if not is_valid_http_url(candidate):
        logger.warning("Invalid Docker URL skipped: %s", trimmed)
        return None
    return candidate


def is_valid_http_url(candidate: str) -> bool:
    if any(ch.isspace() for ch in candidate):
        return False
    try:
        parts = urlsplit(candidate)
        # Accessing .port raises ValueError for out-of-range ports
        parts.port
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.hostname)


def derive_url(
    ports: List[PortMapping],
    container_ip: Optional[str],
    fallback_host: Optional[str] = None,
) -> Optional[str]:
    """Best-guess web URL for a container without an explicit web UI label."""
    if not ports:
        return f"http://{container_ip}" if container_ip else None

    published = next((p for p in ports if p.host_port), None)
    if published is not None:
        scheme = _scheme_for(published.host_port)
        return f"{scheme}://{fallback_host or DEFAULT_URL_HOST}:{published.host_port}"

    if container_ip:
        container_port = ports[0].container_port
        if container_port:
            return f"{_scheme_for(container_port)}://{container_ip}:{container_port}"
        return f"http://{container_ip}"

    return None


def build_container(
    summary: dict,
    details: Optional[dict],
    fallback_host: Optional[str] = None,
) -> Optional[Container]:
    """Combine one ``docker ps`` row with its ``docker inspect`` entry."""
    if not isinstance(summary, dict) or not summary.get("ID"):
        return None

    ports = parse_ports(summary.get("Ports") or "")
    labels = parse_labels(summary.get("Labels") or "")
    container_ip = resolve_container_ip(details)

    explicit_url = apply_template(labels.get(LABEL_WEBUI), ports, container_ip, fallback_host)
    explicit_icon = apply_template(labels.get(LABEL_ICON), ports, container_ip, fallback_host)

    return Container(
        id=summary["ID"],
        name=summary.get("Names") or "",
        image=summary.get("Image") or "",
        status=summary.get("Status") or "",
        ports=ports,
        container_ip=container_ip,
        url=normalize_url(explicit_url, fallback_host) or derive_url(ports, container_ip, fallback_host),
        icon=normalize_url(explicit_icon, fallback_host),
    )


# ── docker stats fields ───────────────────────────────────────────────────


def parse_percent(value: Optional[str]) -> Optional[float]:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = float(value.strip().replace("%", ""))
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_human_bytes(text: Optional[str]) -> Optional[float]:
    """``1.5GiB`` -> 1610612736.0; unknown units count as bytes."""
    if not text or not isinstance(text, str):
        return None
    match = _HUMAN_BYTES.match(text.strip())
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    unit = (match.group(2) or "B").lower()
    return value * _BYTE_MULTIPLIERS.get(unit, 1)


def parse_usage_pair(value: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """``used / total`` columns such as MemUsage and NetIO."""
    if not value or not isinstance(value, str):
        return None, None
    parts = [p.strip() for p in value.split("/")]
    if len(parts) < 2:
        return parse_human_bytes(parts[0]), None
    return parse_human_bytes(parts[0]), parse_human_bytes(parts[1])


def _scheme_for(port: Optional[str]) -> str:
    return "https" if _as_int(port) == 443 else "http"


def _as_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
