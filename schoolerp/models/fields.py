"""Shared field validators for partial-update schemas."""


def reject_null(value):
    """PATCH bodies may omit a required field but never set it to null."""
    if value is None:
        raise ValueError("may not be null")
    return value
