"""
Shared constants for the SSH certificate authority.
"""

# Serial numbers are 8 random bytes with the top bit cleared.
SERIAL_NUMBER_BYTES = 8
SERIAL_NUMBER_LIMIT = 2**63

# Policy wildcard tokens. Never valid certificate subjects.
WILDCARD = "*"
WILDCARD_DOMAIN_PREFIX = "*."

# Transient workspace naming
WORKSPACE_PREFIX = "sshca-"
WORKSPACE_SUFFIX_BYTES = 8
CA_PRIVATE_KEY_NAME = "ca_key"
SUBJECT_PUBLIC_KEY_NAME = "subject_key.pub"
GENERATED_KEY_NAME = "ssh_key"
DERIVE_KEY_NAME = "ssh_key"

# Artifact permissions
SECRET_FILE_MODE = 0o600
WORKSPACE_DIR_MODE = 0o700

# Stale workspaces older than this are purged by ``sshca cleanup``
DEFAULT_STALE_WORKSPACE_SECONDS = 3600

# Extensions ssh-keygen grants user certificates by default
DEFAULT_USER_EXTENSIONS = (
    "permit-X11-forwarding",
    "permit-agent-forwarding",
    "permit-port-forwarding",
    "permit-pty",
    "permit-user-rc",
)
