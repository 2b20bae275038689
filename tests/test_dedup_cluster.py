"""Tests for deduplication of raw match candidates."""

from hypothesis import given, settings, strategies as st

from kleerframe.config import DedupPolicy, HOUR_MS
from kleerframe.dedup.cluster import (
    dedupe,
    filter_valid,
    identify_clusters,
    is_strict_subset,
    jaccard,
    membership_key,
    remove_reciprocals,
    remove_subsets,
    remove_temporal_overlaps,
    select_cluster_representatives,
)
from kleerframe.dedup.model import TimeWindow
from tests.helpers.images import MINUTE, make_candidate


def ids(candidates):
    return [c.id for c in candidates]


class TestJaccard:
    def test_identical_sets(self):
        assert jaccard(frozenset("ab"), frozenset("ab")) == 1.0

    def test_partial_overlap(self):
        assert jaccard(frozenset("abc"), frozenset("bcd")) == 0.5

    def test_disjoint(self):
        assert jaccard(frozenset("ab"), frozenset("cd")) == 0.0

    def test_empty(self):
        assert jaccard(frozenset(), frozenset()) == 0.0


class TestHelpers:
    def test_strict_subset(self):
        small = make_candidate("s", ["1", "2"])
        large = make_candidate("l", ["1", "2", "3"])
        assert is_strict_subset(small, large)
        assert not is_strict_subset(large, small)
        assert not is_strict_subset(small, make_candidate("t", ["2", "1"]))

    def test_membership_key_ignores_order(self):
        assert membership_key(make_candidate("a", ["2", "1"])) == membership_key(make_candidate("b", ["1", "2"]))


class TestFilterValid:
    def test_weak_pair_dropped(self):
        weak = make_candidate("weak", ["1", "2"], confidence=69.0)
        assert filter_valid([weak]) == []

    def test_pair_at_floor_kept(self):
        pair = make_candidate("pair", ["1", "2"], confidence=70.0)
        assert filter_valid([pair]) == [pair]

    def test_low_confidence_group_kept(self):
        """The confidence floor only applies to two-photo candidates."""
        group = make_candidate("group", ["1", "2", "3"], confidence=40.0, average_distance=20.0)
        assert filter_valid([group]) == [group]

    def test_high_average_distance_dropped(self):
        group = make_candidate("far", ["1", "2", "3"], confidence=40.0, average_distance=25.5)
        assert filter_valid([group]) == []

    def test_long_window_dropped(self):
        window = TimeWindow(start=0, end=24 * HOUR_MS + 1)
        assert filter_valid([make_candidate("long", ["1", "2"], window=window)]) == []

    def test_day_long_window_kept(self):
        window = TimeWindow(start=0, end=24 * HOUR_MS)
        candidate = make_candidate("day", ["1", "2"], window=window)
        assert filter_valid([candidate]) == [candidate]

    def test_custom_policy(self):
        pair = make_candidate("pair", ["1", "2"], confidence=75.0)
        assert filter_valid([pair], DedupPolicy(min_pair_confidence=80.0)) == []


class TestRemoveSubsets:
    def test_subset_of_accepted_dropped(self):
        large = make_candidate("large", ["1", "2", "3"], confidence=95.0)
        small = make_candidate("small", ["1", "2"], confidence=90.0)
        assert ids(remove_subsets([small, large])) == ["large"]

    def test_superset_evicts_accepted_subset(self):
        """A lower-confidence superset still replaces its subsets."""
        small = make_candidate("small", ["1", "2"], confidence=95.0)
        large = make_candidate("large", ["1", "2", "3"], confidence=80.0)
        assert ids(remove_subsets([small, large])) == ["large"]

    def test_equal_sets_both_kept(self):
        a = make_candidate("a", ["1", "2"])
        b = make_candidate("b", ["2", "1"])
        assert ids(remove_subsets([a, b])) == ["a", "b"]

    def test_ordered_by_confidence(self):
        low = make_candidate("low", ["1", "2"], confidence=80.0)
        high = make_candidate("high", ["3", "4"], confidence=90.0)
        assert ids(remove_subsets([low, high])) == ["high", "low"]

    def test_stable_for_equal_confidence(self):
        first = make_candidate("first", ["1", "2"])
        second = make_candidate("second", ["3", "4"])
        assert ids(remove_subsets([first, second])) == ["first", "second"]


class TestRemoveReciprocals:
    def test_first_of_equal_sets_kept(self):
        a = make_candidate("a", ["1", "2", "3"])
        b = make_candidate("b", ["3", "1", "2"])
        c = make_candidate("c", ["1", "2"])
        assert ids(remove_reciprocals([a, b, c])) == ["a", "c"]


class TestRemoveTemporalOverlaps:
    def test_overlapping_repeat_dropped(self):
        a = make_candidate("a", ["1", "2", "3", "4"])
        b = make_candidate("b", ["1", "2", "3", "5"])
        assert ids(remove_temporal_overlaps([a, b])) == ["a"]

    def test_disjoint_windows_kept(self):
        a = make_candidate("a", ["1", "2", "3", "4"], window=TimeWindow(0, 10 * MINUTE))
        b = make_candidate("b", ["1", "2", "3", "5"], window=TimeWindow(20 * MINUTE, 30 * MINUTE))
        assert ids(remove_temporal_overlaps([a, b])) == ["a", "b"]

    def test_touching_windows_kept(self):
        a = make_candidate("a", ["1", "2", "3", "4"], window=TimeWindow(0, 10 * MINUTE))
        b = make_candidate("b", ["1", "2", "3", "5"], window=TimeWindow(10 * MINUTE, 20 * MINUTE))
        assert ids(remove_temporal_overlaps([a, b])) == ["a", "b"]

    def test_half_overlap_kept(self):
        """Jaccard must strictly exceed the threshold."""
        a = make_candidate("a", ["1", "2", "3"])
        b = make_candidate("b", ["2", "3", "4"])
        assert ids(remove_temporal_overlaps([a, b])) == ["a", "b"]


class TestClustering:
    def test_clusters_are_seed_relative(self):
        """C overlaps B but not the seed A, so it starts its own cluster."""
        a = make_candidate("a", ["1", "2", "3"])
        b = make_candidate("b", ["2", "3", "4"])
        c = make_candidate("c", ["3", "4", "5"])
        clusters = identify_clusters([a, b, c], threshold=0.3)
        assert [ids(cluster) for cluster in clusters] == [["a", "b"], ["c"]]

    def test_representative_maximizes_weighted_confidence(self):
        pair = make_candidate("pair", ["1", "2"], confidence=95.0)
        triple = make_candidate("triple", ["1", "2", "3"], confidence=70.0)
        assert ids(select_cluster_representatives([pair, triple])) == ["triple"]

    def test_first_wins_on_tie(self):
        a = make_candidate("a", ["1", "2"], confidence=90.0)
        b = make_candidate("b", ["2", "1"], confidence=90.0)
        assert ids(select_cluster_representatives([a, b])) == ["a"]

    def test_representatives_sorted_by_confidence(self):
        low = make_candidate("low", ["1", "2"], confidence=75.0)
        high = make_candidate("high", ["3", "4"], confidence=98.0)
        assert ids(select_cluster_representatives([low, high])) == ["high", "low"]


class TestDedupe:
    def test_empty(self):
        assert dedupe([]) == []

    def test_input_not_modified(self):
        raw = [make_candidate("a", ["1", "2"]), make_candidate("b", ["1", "2", "3"])]
        before = list(raw)
        dedupe(raw)
        assert raw == before

    def test_basic_mode_skips_clustering(self):
        a = make_candidate("a", ["1", "2", "3"], confidence=90.0)
        b = make_candidate("b", ["2", "3", "4"], confidence=85.0)
        assert ids(dedupe([a, b], advanced=False)) == ["a", "b"]
        assert ids(dedupe([a, b], advanced=True)) == ["a"]

    def test_full_run(self):
        raw = [
            make_candidate("weak", ["8", "9"], confidence=60.0),
            make_candidate("sub", ["1", "2"], confidence=97.0),
            make_candidate("full", ["1", "2", "3"], confidence=91.0),
            make_candidate("repeat", ["3", "2", "1"], confidence=88.0),
            make_candidate("other", ["5", "6"], confidence=94.0),
        ]
        assert ids(dedupe(raw)) == ["other", "full"]

    @given(st.lists(
        st.tuples(
            st.frozensets(st.sampled_from("abcdefg"), min_size=2, max_size=5),
            st.floats(min_value=70, max_value=100),
        ),
        max_size=10,
    ))
    @settings(max_examples=50)
    def test_result_properties(self, specs):
        """Output is drawn from the input, with unique photo sets and no strict subsets."""
        raw = [
            make_candidate(f"c{i}", sorted(photo_ids), confidence=conf)
            for i, (photo_ids, conf) in enumerate(specs)
        ]
        for advanced in (False, True):
            result = dedupe(raw, advanced=advanced)
            assert set(ids(result)) <= set(ids(raw))
            keys = [membership_key(c) for c in result]
            assert len(keys) == len(set(keys))
            for candidate in result:
                assert not any(is_strict_subset(candidate, other) for other in result)


class TestReferenceCases:
    def test_subset_dropped_in_both_orders(self):
        for small_conf, large_conf in ((95.0, 90.0), (90.0, 95.0)):
            large = make_candidate("g1", ["p1", "p2", "p3"], confidence=large_conf)
            small = make_candidate("g2", ["p1", "p2"], confidence=small_conf)
            assert ids(dedupe([large, small], advanced=False)) == ["g1"]
            assert ids(dedupe([small, large], advanced=False)) == ["g1"]

    def test_reciprocal_pair_collapses(self):
        from_p5 = make_candidate("match-p5-1", ["p5", "p7"])
        from_p7 = make_candidate("match-p7-2", ["p7", "p5"])
        assert len(dedupe([from_p5, from_p7])) == 1

    def test_three_of_four_shared(self):
        a = make_candidate("a", ["p1", "p2", "p3", "p4"])
        b = make_candidate("b", ["p1", "p2", "p3"], confidence=85.0)
        c = make_candidate("c", ["p1", "p2", "p3", "p5"], confidence=85.0)
        assert ids(remove_temporal_overlaps([a, c])) == ["a"]
        apart = make_candidate("c", ["p1", "p2", "p3", "p5"], window=TimeWindow(2 * HOUR_MS, 3 * HOUR_MS))
        assert ids(remove_temporal_overlaps([a, apart])) == ["a", "c"]
        assert ids(dedupe([a, b], advanced=False)) == ["a"]

    def test_validity_floor(self):
        assert dedupe([make_candidate("m", ["p1", "p2"], confidence=65.0)]) == []
        assert ids(dedupe([make_candidate("m", ["p1", "p2"], confidence=75.0)])) == ["m"]


class TestTimeWindow:
    def test_overlaps(self):
        window = TimeWindow(0, 10 * MINUTE)
        assert window.overlaps(TimeWindow(5 * MINUTE, 20 * MINUTE))
        assert window.overlaps(TimeWindow(2 * MINUTE, 3 * MINUTE))

    def test_touching_windows_do_not_overlap(self):
        window = TimeWindow(0, 10 * MINUTE)
        assert not window.overlaps(TimeWindow(10 * MINUTE, 20 * MINUTE))
        assert window.overlap_ratio(TimeWindow(10 * MINUTE, 20 * MINUTE)) == 0.0

    def test_overlaps_agrees_with_ratio(self):
        window = TimeWindow(0, 10 * MINUTE)
        other = TimeWindow(5 * MINUTE, 15 * MINUTE)
        assert window.overlaps(other) == (window.overlap_ratio(other) > 0)
        assert window.overlap_ratio(other) == 5 / 15
