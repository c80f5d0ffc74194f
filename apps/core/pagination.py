# apps/core/pagination.py
from __future__ import annotations

import math

from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from .params import to_int


class PagedResults(BasePagination):
    """
    Page/page_size pagination that never 404s.

    Out-of-range pages come back empty, `page_size` is clamped to `max_page_size`
    and garbage values fall back to the defaults. Response shape:
    `{page, page_size, total_pages, total_count, items}`.
    """

    page_query_param = "page"
    page_size_query_param = "page_size"
    page_size = 20
    max_page_size = 100

    def paginate_queryset(self, queryset, request, view=None):
        self.page = to_int(request.query_params.get(self.page_query_param), 1, max_value=None)
        self.size = to_int(
            request.query_params.get(self.page_size_query_param),
            self.page_size,
            max_value=self.max_page_size,
        )
        self.total_count = queryset.count()
        start = (self.page - 1) * self.size
        return list(queryset[start:start + self.size])

    def get_paginated_response(self, data):
        return Response(
            {
                "page": self.page,
                "page_size": self.size,
                "total_pages": math.ceil(self.total_count / self.size) if self.size else 0,
                "total_count": self.total_count,
                "items": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["page", "page_size", "total_pages", "total_count", "items"],
            "properties": {
                "page": {"type": "integer", "example": 1},
                "page_size": {"type": "integer", "example": self.page_size},
                "total_pages": {"type": "integer", "example": 3},
                "total_count": {"type": "integer", "example": 42},
                "items": schema,
            },
        }

    def get_schema_operation_parameters(self, view):
        return [
            {
                "name": self.page_query_param,
                "required": False,
                "in": "query",
                "description": "1-based page number.",
                "schema": {"type": "integer"},
            },
            {
                "name": self.page_size_query_param,
                "required": False,
                "in": "query",
                "description": f"Items per page (max {self.max_page_size}).",
                "schema": {"type": "integer"},
            },
        ]


class SmallPages(PagedResults):
    page_size = 10
    max_page_size = 200


class CatalogPages(PagedResults):
    page_size = 12
    max_page_size = 100


class AdminPages(PagedResults):
    page_size = 50
    max_page_size = 200
