"""
Route table for the book endpoints.

Routes are matched in registration order, so literal paths such as
``/search`` and ``/stock/available`` must precede ``/{book_id}``.
``check_route_order`` enforces that before the router is built.
"""

from typing import Callable, List, NamedTuple, Sequence

from fastapi import APIRouter, status

from api import books
from api.models import APIResponse

BOOKS_PREFIX = "/api/books"


class RouteSpec(NamedTuple):
    """One method+path binding."""
    method: str
    path: str
    endpoint: Callable
    status_code: int = status.HTTP_200_OK


BOOK_ROUTES: List[RouteSpec] = [
    RouteSpec("POST", "", books.create_book, status.HTTP_201_CREATED),
    RouteSpec("GET", "", books.get_all_books),
    RouteSpec("GET", "/search", books.search_books),
    RouteSpec("GET", "/stock/available", books.get_in_stock_books),
    RouteSpec("GET", "/genre/{genre}", books.get_books_by_genre),
    RouteSpec("GET", "/{book_id}", books.get_book),
    RouteSpec("PUT", "/{book_id}", books.update_book),
    RouteSpec("DELETE", "/{book_id}", books.delete_book),
]


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _is_parameter(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def shadows(earlier: str, later: str) -> bool:
    """
    True when a request for the later path template would be captured by
    the earlier one.
    """
    earlier_segments = _segments(earlier)
    later_segments = _segments(later)
    if len(earlier_segments) != len(later_segments):
        return False
    for mine, theirs in zip(earlier_segments, later_segments):
        if _is_parameter(mine):
            continue
        if mine != theirs:
            return False
    return earlier_segments != later_segments


def check_route_order(routes: Sequence[RouteSpec]) -> None:
    """
    Raise ValueError if any route is unreachable because an earlier route
    with the same method matches its path.
    """
    for index, route in enumerate(routes):
        for earlier in routes[:index]:
            if earlier.method == route.method and shadows(earlier.path, route.path):
                raise ValueError(
                    f"{route.method} {route.path} is shadowed by earlier route {earlier.path}"
                )


def build_book_router(routes: Sequence[RouteSpec] = BOOK_ROUTES) -> APIRouter:
    """Create the /api/books router from the ordered route table."""
    check_route_order(routes)

    router = APIRouter(prefix=BOOKS_PREFIX, tags=["Books"])
    for route in routes:
        router.add_api_route(
            route.path,
            route.endpoint,
            methods=[route.method],
            status_code=route.status_code,
            response_model=APIResponse,
            name=route.endpoint.__name__,
        )
    return router
