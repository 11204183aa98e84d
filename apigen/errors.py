# apigen/errors.py


class DiscoveryError(Exception):
    """Entity declarations cannot be turned into a consistent set of routes."""


class DuplicateEntityError(DiscoveryError):
    pass


class MissingIdentityKeyError(DiscoveryError):
    pass
