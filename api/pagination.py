from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class DefaultPagination(PageNumberPagination):
    """Page-number pagination for the course and user listings.

    Clients pick `?page_size=N` up to `max_page_size`; the course
    queryset is already ordered newest first, so pages are stable.
    """

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
