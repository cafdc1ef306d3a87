import pytest

from apps.board import positions


def test_normalize_sorts_by_position_then_id_and_renumbers():
    assert positions.normalize([(3, 5), (1, 5), (2, 0)]) == [(2, 0), (1, 1), (3, 2)]


def test_insert_at_shifts_following_items():
    after = positions.insert_at([(10, 0), (11, 1), (12, 2)], 99, 1)
    assert after == [(10, 0), (99, 1), (11, 2), (12, 3)]


def test_insert_without_index_appends():
    assert positions.insert_at([(10, 0)], 99) == [(10, 0), (99, 1)]


@pytest.mark.parametrize('desired, expected_index', [(-5, 0), (50, 2)])
def test_insert_clamps_index(desired, expected_index):
    after = positions.insert_at([(10, 0), (11, 1)], 99, desired)
    assert after[expected_index] == (99, expected_index)
    assert positions.is_contiguous(after)


def test_insert_rejects_duplicate_id():
    with pytest.raises(ValueError):
        positions.insert_at([(10, 0)], 10, 0)


def test_move_to_front_within_same_list():
    # [X, Y, Z] -> mover Y para 0 -> [Y, X, Z]
    x, y, z = 1, 2, 3
    after = positions.move_within_sequence([(x, 0), (y, 1), (z, 2)], y, 0)
    assert after == [(y, 0), (x, 1), (z, 2)]


def test_move_down_shifts_items_in_between_up():
    after = positions.move_within_sequence([(1, 0), (2, 1), (3, 2), (4, 3)], 1, 2)
    assert positions.ids_in_order(after) == [2, 3, 1, 4]


def test_move_to_current_position_changes_nothing():
    before = [(1, 0), (2, 1), (3, 2)]
    after = positions.move_within_sequence(before, 2, 1)
    assert positions.changed_positions(before, after) == {}


def test_move_within_clamps_to_last_index():
    after = positions.move_within_sequence([(1, 0), (2, 1), (3, 2)], 1, 99)
    assert positions.ids_in_order(after) == [2, 3, 1]


def test_move_within_unknown_id():
    with pytest.raises(KeyError):
        positions.move_within_sequence([(1, 0)], 7, 0)


def test_move_across_sequences():
    # A = [P, Q], B = [R]; P vai para B no índice 0
    p, q, r = 1, 2, 3
    new_a, new_b = positions.move_across_sequences([(p, 0), (q, 1)], [(r, 0)], p, 0)
    assert new_a == [(q, 0)]
    assert new_b == [(p, 0), (r, 1)]


def test_move_across_conserves_ids():
    source = [(1, 0), (2, 1), (3, 2)]
    target = [(7, 0), (8, 1)]
    new_source, new_target = positions.move_across_sequences(source, target, 2, None)

    assert len(new_source) == len(source) - 1
    assert len(new_target) == len(target) + 1
    assert set(positions.ids_in_order(new_source)) | set(positions.ids_in_order(new_target)) == {1, 2, 3, 7, 8}
    assert positions.ids_in_order(new_target)[-1] == 2


def test_move_across_rejects_id_already_in_target():
    with pytest.raises(ValueError):
        positions.move_across_sequences([(1, 0)], [(1, 0)], 1, 0)


def test_remove_closes_the_gap():
    # [X, Y, Z] sem Y -> [X, Z] com Z em 1
    after = positions.remove_id([(1, 0), (2, 1), (3, 2)], 2)
    assert after == [(1, 0), (3, 1)]


def test_remove_unknown_id():
    with pytest.raises(KeyError):
        positions.remove_id([(1, 0)], 2)


def test_operations_repair_gaps_and_duplicates():
    broken = [(1, 0), (2, 0), (3, 7)]
    assert not positions.is_contiguous(broken)

    after = positions.insert_at(broken, 4, 1)
    assert positions.is_contiguous(after)
    assert positions.ids_in_order(after) == [1, 4, 2, 3]


def test_changed_positions_reports_only_moved_and_new_ids():
    before = [(1, 0), (2, 1)]
    after = [(9, 0), (1, 1), (2, 2)]
    assert positions.changed_positions(before, after) == {9: 0, 1: 1, 2: 2}
    assert positions.changed_positions(before, before) == {}
