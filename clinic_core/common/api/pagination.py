from __future__ import annotations

from typing import Any

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200


def paginate(request, items, serializer_class=None, *, context: dict[str, Any] | None = None) -> Response:
    """
    Paginated list response: { count, next, previous, results }.

    `items` may be a queryset (serialized with serializer_class) or a list of
    already-built dicts (serializer_class=None), e.g. read models.
    """
    p = DefaultPagination()
    page = p.paginate_queryset(items, request)
    rows = page if page is not None else items

    if serializer_class is not None:
        data = serializer_class(rows, many=True, context=context or {}).data
    else:
        data = list(rows)

    if page is not None:
        return p.get_paginated_response(data)
    return Response(data)
