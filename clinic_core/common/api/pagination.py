from __future__ import annotations

from rest_framework.response import Response

from clinic_core.common.pagination import Page


def _int_param(request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return -1  # normalize_paging() rejects it with a validation error


def page_params(request) -> tuple[int | None, int | None]:
    return _int_param(request, "page"), _int_param(request, "page_size")


def paginated_response(page: Page, serializer_class) -> Response:
    """
    Shared pagination contract:
      { count, page, page_size, total_pages, results }
    """
    ser = serializer_class(page.items, many=True)
    return Response(
        {
            "count": page.total,
            "page": page.page,
            "page_size": page.page_size,
            "total_pages": page.total_pages,
            "results": ser.data,
        }
    )
