from collections import Counter

from ranking import top_n


class TestTopN:
    def test_descending_count(self):
        table = Counter({"/a": 2, "/b": 7, "/c": 4})
        assert top_n(table, 10) == [("/b", 7), ("/c", 4), ("/a", 2)]

    def test_ties_break_by_ascending_key(self):
        table = Counter({"b": 2, "a": 2, "c": 5, "": 2})
        assert top_n(table, 4) == [("c", 5), ("", 2), ("a", 2), ("b", 2)]

    def test_integer_keys_tie_break_on_string_form(self):
        assert top_n({200: 1, 1000: 1, 404: 3}, 3) == [(404, 3), (1000, 1), (200, 1)]

    def test_truncates_to_n(self):
        table = Counter({f"/p{i:02d}": i for i in range(1, 21)})
        result = top_n(table, 3)
        assert result == [("/p20", 20), ("/p19", 19), ("/p18", 18)]

    def test_small_table_returns_everything(self):
        assert top_n({"x": 1}, 10) == [("x", 1)]

    def test_zero_or_negative_n_is_empty(self):
        assert top_n({"x": 1}, 0) == []
        assert top_n({"x": 1}, -3) == []

    def test_empty_table(self):
        assert top_n(Counter(), 5) == []

    def test_idempotent_and_does_not_mutate(self):
        table = Counter({"b": 3, "a": 3, "c": 1})
        snapshot = dict(table)
        first = top_n(table, 2)
        assert top_n(table, 2) == first == [("a", 3), ("b", 3)]
        assert dict(table) == snapshot
