"""
Semantic test: reducer estimation.

Invariant:
Each tag contributes ceil(bytes / bytes-per-reducer for that tag) reducers,
the total is never below one, and a location is counted at most once.
"""

from __future__ import annotations

import pytest

from incremental_rollup.core.config.job_config import ReduceSizingConfig
from incremental_rollup.core.domain.errors import UnknownPropertyError
from incremental_rollup.planning.reduce_sizer import ReduceSizer, estimate_reducers

MB = 1024 * 1024


def test_no_input_still_gets_one_reducer() -> None:
    assert ReduceSizer().reducer_count() == 1


def test_default_ratio_is_256_megabytes() -> None:
    sizer = ReduceSizer()
    sizer.add_input("/in/2024/01/01", 256 * MB)
    assert sizer.reducer_count() == 1

    sizer.add_input("/in/2024/01/02", 1)
    assert sizer.reducer_count() == 2


def test_tags_are_rounded_up_separately() -> None:
    config = ReduceSizingConfig(
        bytes_per_reducer=100,
        bytes_per_reducer_by_tag={"previous": 1000},
    )

    assert estimate_reducers({"input": 150, "previous": 10}, config) == 3


def test_same_location_cannot_be_added_twice() -> None:
    sizer = ReduceSizer()
    sizer.add_input("/in/2024/01/01", 10, "input")

    with pytest.raises(ValueError):
        sizer.add_input("/in/2024/01/01", 10, "previous")


def test_bytes_are_grouped_by_tag() -> None:
    sizer = ReduceSizer()
    sizer.add_input("/a", 10, "input")
    sizer.add_input("/b", 5, "input")
    sizer.add_input("/c", 7, "previous")

    assert sizer.bytes_by_tag() == {"input": 15, "previous": 7}
    assert sizer.total_bytes == 22


def test_properties_set_default_and_tag_ratios() -> None:
    config = ReduceSizingConfig.from_properties(
        {
            "num.reducers.bytes.per.reducer": "1000",
            "num.reducers.previous.bytes.per.reducer": "5000",
            "unrelated.key": "ignored",
        }
    )

    assert config.ratio_for("input") == 1000
    assert config.ratio_for("previous") == 5000


def test_unknown_reducer_property_rejected() -> None:
    with pytest.raises(UnknownPropertyError):
        ReduceSizingConfig.from_properties({"num.reducers.max": "10"})
