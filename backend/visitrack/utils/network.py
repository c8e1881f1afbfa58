import ipaddress

UNKNOWN_IP = "unknown"
MAX_IP_LENGTH = 45


def clean_ip(value: str) -> str:
    """
    Strip whitespace, IPv6 brackets and IPv4 ports from a forwarded address.

    Values that are not IP addresses are returned trimmed and truncated.
    """
    value = (value or "").strip()
    if value.startswith("[") and "]" in value:
        value = value[1:value.index("]")]
    elif value.count(":") == 1:
        host, _, port = value.partition(":")
        if port.isdigit():
            value = host

    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return value[:MAX_IP_LENGTH]


def get_client_ip(request) -> str:
    """
    Client IP address of a request.

    Proxy headers win over the socket peer: the first X-Forwarded-For hop,
    then X-Real-IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first_hop = clean_ip(forwarded.split(",")[0])
        if first_hop:
            return first_hop

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and clean_ip(real_ip):
        return clean_ip(real_ip)

    return clean_ip(request.client.host) if request.client else UNKNOWN_IP
