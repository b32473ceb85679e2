from feedboard.state.reorder import array_move, is_permutation, move_by_id


class TestIsPermutation:
    """Multiset comparison of ids"""

    def test_same_ids_any_order(self):
        assert is_permutation(["a", "b", "c"], ["c", "a", "b"])

    def test_rejects_added_removed_or_replaced(self):
        assert not is_permutation(["a", "b"], ["a", "b", "c"])
        assert not is_permutation(["a", "b"], ["a"])
        assert not is_permutation(["a", "b"], ["a", "x"])

    def test_duplicates_count(self):
        assert not is_permutation(["a", "a", "b"], ["a", "b", "b"])


class TestMoves:
    """Drag-end helpers"""

    def test_array_move_forward_and_back(self):
        assert array_move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
        assert array_move(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]

    def test_array_move_copies(self):
        items = ["a", "b"]
        array_move(items, 0, 1)
        assert items == ["a", "b"]

    def test_move_by_id(self):
        assert move_by_id(["a", "b", "c"], "c", "a", key=str) == ["c", "a", "b"]

    def test_move_by_id_noops(self):
        assert move_by_id(["a", "b"], "a", "a", key=str) is None
        assert move_by_id(["a", "b"], "a", None, key=str) is None
        assert move_by_id(["a", "b"], "zzz", "a", key=str) is None
