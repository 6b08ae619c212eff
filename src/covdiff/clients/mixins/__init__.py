from covdiff.clients.mixins.pagination import PaginationMixin
from covdiff.clients.mixins.retry import RetryMixin


__all__ = ["PaginationMixin", "RetryMixin"]
