from stormimpact.dsa import merge_sort


def test_merge_sort_orders_both_directions():
    data = [5, 1, 4, 2, 3]
    assert merge_sort(data) == [1, 2, 3, 4, 5]
    assert merge_sort(data, reverse=True) == [5, 4, 3, 2, 1]
    assert data == [5, 1, 4, 2, 3]


def test_merge_sort_is_stable_when_descending():
    pairs = [("a", 1), ("b", 3), ("c", 1), ("d", 3), ("e", 2)]
    out = merge_sort(pairs, key=lambda p: p[1], reverse=True)
    assert [p[0] for p in out] == ["b", "d", "e", "a", "c"]


def test_merge_sort_accepts_tuples_and_empty():
    assert merge_sort(()) == []
    assert merge_sort((2, 1)) == [1, 2]
