import logging

import pytest

from covdiff.clients.mixins.pagination import PaginationMixin


class PaginationTestHelper(PaginationMixin):
    def __init__(self) -> None:
        super().__init__()


def test_should_yield_every_item_when_no_limit_is_set() -> None:
    instance = PaginationTestHelper()

    results = list(instance.paginate(["item1", "item2", "item3"]))

    assert results == ["item1", "item2", "item3"]


def test_should_consume_generators_lazily() -> None:
    instance = PaginationTestHelper()
    pulled = []

    def pages():
        for i in range(1, 11):
            pulled.append(i)
            yield f"item{i}"

    iterator = instance.paginate(pages(), max_items=5)
    first = next(iterator)

    assert first == "item1"
    assert pulled == [1]


def test_should_stop_at_max_items_and_warn(caplog) -> None:
    instance = PaginationTestHelper()

    with caplog.at_level(logging.WARNING, logger="covdiff"):
        results = list(
            instance.paginate(
                (f"file{i}" for i in range(1, 11)), max_items=3, label="files"
            )
        )

    assert results == ["file1", "file2", "file3"]
    assert "Reached max_items limit (3) for files" in caplog.text


def test_should_not_warn_when_listing_fits_the_limit(caplog) -> None:
    instance = PaginationTestHelper()

    with caplog.at_level(logging.WARNING, logger="covdiff"):
        results = instance.collect(["a", "b"], max_items=2)

    assert results == ["a", "b"]
    assert caplog.records == []


def test_should_propagate_errors_from_the_listing() -> None:
    instance = PaginationTestHelper()

    def failing():
        yield "item1"
        raise ValueError("Fetch error")

    with pytest.raises(ValueError, match="Fetch error"):
        instance.collect(failing())


def test_should_collect_into_a_list() -> None:
    instance = PaginationTestHelper()

    results = instance.collect(iter(range(5)), max_items=10)

    assert results == [0, 1, 2, 3, 4]
