"""URL helpers."""

from urllib.parse import urlsplit, urlunsplit


def join_url(base: str, *elements: str) -> str:
    """Join path elements onto a base URL.

    Redundant slashes between elements are collapsed. A trailing slash on the
    last element is kept, since the export server uses it to tell a directory
    listing from a file.
    """
    parsed = urlsplit(base)
    segments = [parsed.path.rstrip("/")]
    segments.extend(e.strip("/") for e in elements if e.strip("/"))
    path = "/".join(segments)
    if not path.startswith("/"):
        path = "/" + path

    if elements:
        trailing = elements[-1].endswith("/")
    else:
        trailing = parsed.path.endswith("/")
    if trailing and not path.endswith("/"):
        path += "/"

    return urlunsplit(parsed._replace(path=path))
