"""Destination path construction."""

import posixpath

from filegate.core.exceptions import InvalidPath


def construct_path(directory: str, filename: str) -> str:
    """Join a destination directory and a filename into a normalized path.

    Traversal segments are not rejected here, the files service decides
    whether the result stays inside its storage root.

    Raises:
        InvalidPath: If the joined path is not representable as UTF-8
    """
    joined = posixpath.join(directory, filename)
    path = posixpath.normpath(joined) if joined else joined
    try:
        path.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPath("Path is not valid UTF-8") from e
    return path
