"""Utility functions for the Keystone/Manila bridge."""

from constants import SECRET_NAME_PREFIX
from models import ExportLocationError


def make_secret_name(share_id: str) -> str:
    """Generate the name of the Secret holding a share's credentials.

    Example: '4a1b...' -> 'manila-4a1b...'
    """
    return SECRET_NAME_PREFIX + share_id


def split_export_location(path: str) -> tuple[str, str]:
    """Split an export location path into its address and location parts.

    Export locations look like "addr1:port,addr2:port,...:/location". The
    last ':' is the delimiter, since addresses may contain colons themselves.

    Example: '10.0.0.1:6789,10.0.0.2:6789:/volumes/x' ->
        ('10.0.0.1:6789,10.0.0.2:6789', '/volumes/x')
    """
    delim_pos = path.rfind(":")
    if delim_pos <= 0:
        raise ExportLocationError(
            f"failed to parse address and location from export location '{path}'"
        )
    return path[:delim_pos], path[delim_pos + 1 :]
