"""
Static port tables used by the connect worker and the fingerprint cascade.
"""

from types import MappingProxyType
from typing import NamedTuple, Optional, Tuple

# Best-effort service names by port convention.
KNOWN_SERVICES = MappingProxyType({
    1: "tcpmux",
    7: "echo",
    13: "daytime",
    19: "chargen",
    20: "ftp-data",
    21: "ftp",
    22: "ssh",
    23: "telnet",
    25: "smtp",
    53: "dns",
    67: "dhcp-server",
    68: "dhcp-client",
    69: "tftp",
    80: "http",
    110: "pop3",
    111: "rpcbind",
    123: "ntp",
    135: "msrpc",
    139: "netbios-ssn",
    143: "imap",
    161: "snmp",
    162: "snmp-trap",
    389: "ldap",
    443: "https",
    445: "smb",
    465: "smtps",
    500: "isakmp",
    587: "submission",
    631: "ipp",
    993: "imaps",
    995: "pop3s",
    1433: "mssql",
    1521: "oracle",
    1723: "pptp",
    2049: "nfs",
    2181: "zookeeper",
    3128: "proxy",
    3306: "mysql",
    3389: "rdp",
    5432: "postgresql",
    5900: "vnc",
    6379: "redis",
    7001: "http-alt",
    8080: "http-alt",
    8443: "https-alt",
    8888: "http-alt",
    9000: "http-alt",
    9090: "http-alt",
    9200: "elasticsearch",
    11211: "memcached",
    27017: "mongodb",
})

# Ports worth a plaintext HTTP request when nothing else matched.
HTTP_PORTS = frozenset({80, 8000, 8080, 8081, 8888, 9000, 9090})

# Ports worth a TLS handshake when nothing else matched.
TLS_PORTS = frozenset({443, 8443, 993, 995, 465, 9443})

# Service name reported after a successful handshake; anything else is "tls".
TLS_SERVICES = MappingProxyType({
    443: "https",
    8443: "https",
    9443: "https",
    993: "imaps",
    995: "pop3s",
    465: "smtps",
})


class BannerRule(NamedTuple):
    service: str
    ports: frozenset
    prefixes: Tuple[str, ...]
    keywords: Tuple[str, ...]  # matched case-insensitively

    def matches(self, port: int, banner: str) -> bool:
        if port not in self.ports or not banner:
            return False
        if banner.startswith(self.prefixes):
            return True
        upper = banner.upper()
        return any(k in upper for k in self.keywords)


# Greeting-based rules, tried in order after the SSH check.
BANNER_RULES = (
    BannerRule("smtp", frozenset({25, 587, 465}), ("220 ",), ("SMTP",)),
    BannerRule("ftp", frozenset({21}), ("220 ",), ("FTP",)),
    BannerRule("pop3", frozenset({110}), ("+OK",), ("POP3",)),
    BannerRule("imap", frozenset({143}), ("* OK",), ("IMAP",)),
)


def known_service(port: int) -> Optional[str]:
    return KNOWN_SERVICES.get(port)


def tls_service(port: int) -> str:
    return TLS_SERVICES.get(port, "tls")
