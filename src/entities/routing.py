from enum import Enum


class Provider(str, Enum):
    """Backend that served the most recent request."""

    LOCAL = "local"
    CLOUD = "cloud"
    NONE = "none"
