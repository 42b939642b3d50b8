"""Errors raised while declaring the EC2-with-SSH stack.

Both are fatal preconditions: they are raised before any construct is added
to the CDK app, so a failed declaration never leaves a partial graph behind.
"""


class MissingParameterError(ValueError):
    """A required context parameter was absent or empty."""


class InvalidParameterError(ValueError):
    """A context parameter was present but malformed."""


class FileReadError(OSError):
    """The bootstrap script could not be read."""
