"""Grammar for CoreDNS ``log`` plugin lines.

Only the plugin's default format is understood, e.g.::

    [INFO] 10.42.2.90:59003 - 9687 "AAAA IN user-db.sock-shop.svc.cluster.local. udp 53 false 512" NOERROR qr,aa,rd 146 0.000428325s

The client address is the second field and the queried name is the token
ending in the cluster FQDN suffix. Anything that breaks that layout raises
ParseError rather than yielding a wrong event.
"""

from __future__ import annotations

from kico.errors import ParseError
from kico.models.cluster import DEFAULT_FQDN_SUFFIX
from kico.models.connections import ConnectionEvent

FQDN_SUFFIX = DEFAULT_FQDN_SUFFIX

_INFO_TAG = "[INFO]"
# https://www.iana.org/assignments/dns-parameters/dns-parameters.xhtml#dns-parameters-6
_SUCCESS_RCODE = "NOERROR"


def is_relevant(line: str, fqdn_suffix: str = FQDN_SUFFIX) -> bool:
    """True for a successful lookup of an in-cluster service name.

    Checks run in the order the parts appear in the line and stop at the
    first miss.
    """
    return (
        line.startswith(_INFO_TAG)
        and fqdn_suffix in line
        and _SUCCESS_RCODE in line
        # client IP:PORT, e.g. 10.42.2.90:59003
        and ":" in line
    )


def _hostname(line: str, fqdn_suffix: str) -> str:
    suffix_at = line.index(fqdn_suffix)
    for i in range(suffix_at - 1, -1, -1):
        if line[i].isspace():
            name = line[i + 1 : suffix_at]
            if name:
                return name + fqdn_suffix
            break
    raise ParseError("FQDN not found", line)


def _client_address(line: str) -> tuple[str, str]:
    fields = line.split()
    if len(fields) < 2:
        raise ParseError("pod ip not found", line)
    ip, sep, port = fields[1].rpartition(":")
    if not sep or not ip:
        raise ParseError("pod ip not found", line)
    if not port:
        raise ParseError("pod port not found", line)
    return ip, port


def parse(line: str, fqdn_suffix: str = FQDN_SUFFIX) -> ConnectionEvent | None:
    """Extract a ConnectionEvent from *line*.

    Returns None, without attempting extraction, when the line is not
    relevant. Raises ParseError when a relevant line is malformed.
    """
    if not is_relevant(line, fqdn_suffix):
        return None
    hostname = _hostname(line, fqdn_suffix)
    ip, port = _client_address(line)
    return ConnectionEvent(source_ip=ip, source_port=port, destination_hostname=hostname)
