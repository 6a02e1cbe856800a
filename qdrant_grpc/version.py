from dataclasses import (
    dataclass,
)
from importlib.metadata import (
    PackageNotFoundError,
    version,
)
import logging

logger = logging.getLogger("qdrant_grpc.version")

UNKNOWN_VERSION = "Unknown"


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    rest: str = ""


def get_client_version() -> str:
    """
    Return the installed version of qdrant-grpc.

    If the version cannot be determined, return ``"Unknown"``.

    :return: The version of the client library.
    :rtype: str
    """
    try:
        return version("qdrant-grpc")
    except PackageNotFoundError as e:
        logger.warning("Could not fetch qdrant-grpc version: %s", e)
        return UNKNOWN_VERSION


def parse_version(version_str: str) -> Version:
    """
    Parse ``"x.y.z"`` into a :class:`Version`.

    Leading non-digit characters (``"v1.9.0"``) are ignored and the patch part
    is optional.

    :raise ValueError: If major and minor cannot be read.
    """
    cleaned = version_str.lstrip()
    while cleaned and not cleaned[0].isdigit():
        cleaned = cleaned[1:]

    parts = cleaned.split(".", 2)
    if len(parts) < 2:
        raise ValueError(
            f"unable to parse version, expected format: x.y.z, found: {cleaned}"
        )

    try:
        major = int(parts[0])
    except ValueError as e:
        raise ValueError(f"failed to parse major version: {e}") from e
    try:
        minor = int(parts[1])
    except ValueError as e:
        raise ValueError(f"failed to parse minor version: {e}") from e

    return Version(major=major, minor=minor, rest=parts[2] if len(parts) == 3 else "")


def is_compatible(client_version: str, server_version: str) -> bool:
    """Major versions must match and minor versions may differ by at most one."""
    if client_version == server_version:
        return True

    try:
        client = parse_version(client_version)
        server = parse_version(server_version)
    except ValueError as e:
        logger.warning("Unable to compare versions: %s", e)
        return False

    if client.major != server.major:
        return False
    return abs(client.minor - server.minor) <= 1
