import re
import secrets

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address) -> bool:
    """True for a 0x-prefixed, 40 hex digit address."""
    return isinstance(address, str) and bool(ADDRESS_RE.match(address))


def shorten_address(address: str) -> str:
    """Formats an address for display as 0x1234...abcd."""
    if not is_valid_address(address):
        return "Invalid Address"
    return f"{address[:6]}...{address[-4:]}"


def generate_temp_token_address() -> str:
    """Random placeholder address used when no deployed token address is known yet."""
    return "0x" + secrets.token_hex(20)
