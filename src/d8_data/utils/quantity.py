"""Kubernetes-style binary quantity formatting."""

_BINARY_SUFFIXES = ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]


def format_binary_quantity(size: int) -> str:
    """Format a byte count the way Kubernetes renders BinarySI quantities.

    The largest suffix that divides the value exactly is used, so 1073741824
    becomes ``1Gi`` while 1234 stays ``1234``.
    """
    value = size
    index = 0
    while value != 0 and value % 1024 == 0 and index < len(_BINARY_SUFFIXES) - 1:
        value //= 1024
        index += 1
    return f"{value}{_BINARY_SUFFIXES[index]}"
