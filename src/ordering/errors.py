"""Errors raised by the Ordering context that Protean does not model."""

from protean.exceptions import ProteanException


class ForbiddenError(ProteanException):
    """Caller does not own the resource it is acting on.

    Equivalent to 403 (Forbidden). The message never says which resource was
    probed, only that the caller is not authorized.
    """

    def __init__(self, *args, **kwargs):
        if not args:
            args = ("Not authorized",)
        super().__init__(*args, **kwargs)
