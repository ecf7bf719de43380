"""Routing of the wildcard GET path to tree, download and search."""

from enum import Enum
from typing import Tuple
from uuid import UUID

from fastapi import Response

from filegate.api.v1 import handlers
from filegate.core.exceptions import NotFound, UnprocessableEntity
from filegate.models.files import AuthUser, SearchQuery
from filegate.services.files.base import FilesService


class RouteToken(str, Enum):
    """Operation selected by the first segment of the wildcard path."""

    TREE = "tree"
    DOWNLOAD = "download"
    SEARCH = "search"

    @classmethod
    def parse(cls, token: str) -> "RouteToken":
        """Raises NotFound for anything outside the closed set."""
        try:
            return cls(token)
        except ValueError:
            raise NotFound() from None


def split_route(path: str) -> Tuple[str, str]:
    """Split a wildcard path on its first "/" into (token, sub_path)."""
    token, _, sub_path = path.partition("/")
    return token, sub_path


async def dispatch(
    path: str,
    query: SearchQuery,
    storage_id: UUID,
    user: AuthUser,
    files_service: FilesService,
) -> Response:
    token, sub_path = split_route(path)
    route = RouteToken.parse(token)

    if route is RouteToken.TREE:
        return await handlers.tree(files_service, user, storage_id, sub_path)
    if route is RouteToken.DOWNLOAD:
        return await handlers.download(files_service, user, storage_id, sub_path)
    if route is RouteToken.SEARCH:
        if not query.search_path:
            raise UnprocessableEntity("search_path query parameter is required")
        return await handlers.search(files_service, user, storage_id, sub_path, query.search_path)
    raise NotFound()
