import ipaddress
import re
from logging import getLogger
from pathlib import Path
from typing import Mapping, Optional

from .errors import FileReadError, InvalidParameterError, MissingParameterError

logger = getLogger(__name__)

# dotted quad with an optional prefix length, nothing else
_IPV4_CIDR = re.compile(r"(\d{1,3}\.){3}\d{1,3}(/(?P<prefix>\d{1,2}))?")


def validate_input(context: Mapping[str, Optional[str]], parameter_name: str) -> str:
    """Return the named context parameter, failing if it is absent or empty.

    Only presence is checked here; see validate_ip_format for the
    format check.
    """
    value = context.get(parameter_name)
    if not value:
        raise MissingParameterError(
            "IP address must be provided via context. "
            f"Use: cdk deploy -c {parameter_name}=your.ip.address/32"
        )
    return value


def validate_ip_format(value: str, parameter_name: str) -> str:
    """Check that value is an IPv4 CIDR block with a prefix length mask.

    Accepts the same form as ec2.Peer.ipv4, so a value that passes here
    does not fail later during declaration.
    """
    match = _IPV4_CIDR.fullmatch(value)
    if match is None:
        raise InvalidParameterError(
            f"{parameter_name}='{value}' is not a valid IPv4 CIDR block"
        )
    if match.group("prefix") is None:
        raise InvalidParameterError(
            f"CIDR mask is missing in {parameter_name}='{value}'. "
            f"Did you mean '{value}/32'?"
        )
    try:
        ipaddress.IPv4Network(value, strict=False)
    except ValueError as e:
        raise InvalidParameterError(
            f"{parameter_name}='{value}' is not a valid IPv4 CIDR block: {e}"
        ) from e
    return value


def load_bootstrap_script(path: Path) -> str:
    """Read the bootstrap script at path, returning its content unchanged."""
    # read bytes to keep line endings exactly as they are on disk
    try:
        content = Path(path).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Could not read bootstrap script {path}: {e}") from e
    logger.debug("Loaded %d characters of user data from %s", len(content), path)
    return content
