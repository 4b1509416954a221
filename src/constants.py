"""Constants used across the bridge."""

# Data types that may be synced from Keystone. Only projects for now.
ALLOWED_DATA_TYPES_TO_SYNC = frozenset({"projects"})

# Default namespace name format: just the Keystone project id
DEFAULT_NAMESPACE_FORMAT = "%i"

# Kubernetes caps namespace names at 63 characters
MAX_NAMESPACE_NAME_LENGTH = 63

# Prefix of the Secret holding a share's credentials
SECRET_NAME_PREFIX = "manila-"

# Manila access rule parameters for CephFS shares
CEPHX_ACCESS_TYPE = "cephx"
ACCESS_LEVEL_RW = "rw"

# Polling budget for the access key to be populated by the backend
DEFAULT_ACCESS_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0

# Manila microversion that exposes access_key on access rules
MANILA_API_VERSION = "2.21"
