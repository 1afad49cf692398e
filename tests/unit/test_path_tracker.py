"""
Unit tests for PathTracker: depth-driven address reconstruction and skip-ahead state.
"""

import pytest

from stream_extractor.models import NodeKind, ReaderEvent
from stream_extractor.parsing.path_tracker import PathTracker


def start(name, depth, is_empty=False):
    return ReaderEvent(NodeKind.ELEMENT, name, depth, is_empty)


def end(name, depth):
    return ReaderEvent(NodeKind.END_ELEMENT, name, depth)


@pytest.fixture
def tracker():
    return PathTracker()


def test_advance_builds_address_from_depth(tracker):
    assert tracker.advance(start('Persons', 0))
    assert tracker.advance(start('Person', 1))
    assert tracker.advance(start('Name', 2))

    assert tracker.current_address == 'Persons/Person/Name'
    assert tracker.stack == ['Persons', 'Person', 'Name']


def test_sibling_replaces_last_segment(tracker):
    for event in (start('Persons', 0), start('Person', 1), start('Name', 2), end('Name', 2), start('Surname', 2)):
        tracker.advance(event)

    assert tracker.current_address == 'Persons/Person/Surname'
    assert len(tracker.stack) == 3


def test_returning_to_shallower_depth_truncates(tracker):
    for event in (start('A', 0), start('B', 1), start('C', 2), start('D', 3), start('E', 1)):
        tracker.advance(event)

    assert tracker.current_address == 'A/E'


def test_end_of_document(tracker):
    assert tracker.advance(None) is False


def test_match_candidate_rules(tracker):
    tracker.advance(start('Persons', 0))
    assert tracker.is_match_candidate(start('Person', 1))
    assert not tracker.is_match_candidate(start('Person', 1, is_empty=True))
    assert not tracker.is_match_candidate(end('Person', 1))


def test_skip_clears_on_first_recurrence_only(tracker):
    tracker.advance(start('Persons', 0))
    tracker.advance(start('Person', 1))
    tracker.skip_to('/Persons/Person/')

    assert tracker.skipping
    tracker.advance(start('Name', 2))
    assert tracker.skipping
    assert not tracker.is_match_candidate(start('Name', 2))

    tracker.advance(end('Person', 1))
    assert not tracker.skipping

    tracker.advance(start('Person', 1))
    assert tracker.is_match_candidate(start('Person', 1))


def test_reset(tracker):
    tracker.advance(start('Persons', 0))
    tracker.skip_to('Persons')
    tracker.reset()

    assert tracker.stack == []
    assert tracker.current_address == ''
    assert tracker.skip is None
