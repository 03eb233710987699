# products/pagination.py

from rest_framework.pagination import PageNumberPagination


class StandardPagination(PageNumberPagination):
    """PageNumberPagination with a client-controlled page size (capped)."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
