import itertools

import pytest

from dcx.categorize import MountStatus, categorize, state_label, was_label


@pytest.mark.parametrize(
    "in_table,accessible,has_container,expected",
    [
        (True, True, True, MountStatus.ACTIVE),
        (True, True, False, MountStatus.ORPHANED),
        (True, False, True, MountStatus.STALE),
        (True, False, False, MountStatus.STALE),
        (False, True, True, MountStatus.EMPTY),
        (False, False, False, MountStatus.EMPTY),
    ],
)
def test_categorize(in_table, accessible, has_container, expected):
    assert categorize(in_table, accessible, has_container) is expected


def test_every_input_maps_to_a_status():
    for triple in itertools.product([True, False], repeat=3):
        assert isinstance(categorize(*triple), MountStatus)


def test_labels():
    assert [was_label(s) for s in MountStatus] == [
        "running",
        "orphaned",
        "stale",
        "empty dir",
    ]
    assert state_label(MountStatus.STALE) == "stale mount"
    assert state_label(MountStatus.EMPTY) == "empty dir"
