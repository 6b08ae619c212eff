from collections.abc import Generator, Iterable
from typing import Any, TypeVar

from covdiff.logger import get_logger


T = TypeVar("T")


class PaginationMixin:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._pagination_logger = get_logger(
            f"{self.__class__.__name__}.PaginationMixin"
        )

    def paginate(
        self, items: Iterable[T], max_items: int | None = None, label: str = "items"
    ) -> Generator[T, None, None]:
        """
        Iterate a lazily paginated host listing with an upper bound.

        Args:
            items: PyGithub PaginatedList or python-gitlab generator
            max_items: Maximum items to yield (None for all)
            label: Name used in log messages

        Yields:
            Individual items across all pages
        """
        count = 0
        for item in items:
            if max_items is not None and count >= max_items:
                self._pagination_logger.warning(
                    f"Reached max_items limit ({max_items}) for {label}, truncating"
                )
                break
            yield item
            count += 1

        self._pagination_logger.debug(f"Fetched {count} {label}")

    def collect(
        self, items: Iterable[T], max_items: int | None = None, label: str = "items"
    ) -> list[T]:
        return list(self.paginate(items, max_items=max_items, label=label))
