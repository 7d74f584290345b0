# SPDX-License-Identifier: MIT

import random
import unittest

from repin_library.desired_set import (
    append_url,
    coerce_desired_set,
    has_dense_ranks,
    merge_window_order,
    normalize_ranks,
    rank_of,
    remove_url,
    sorted_urls,
)


class CoerceDesiredSetTest(unittest.TestCase):
    def test_absent_or_malformed_payloads_become_empty(self):
        self.assertEqual(coerce_desired_set(None), {})
        self.assertEqual(coerce_desired_set([["https://a", 1]]), {})
        self.assertEqual(coerce_desired_set("https://a"), {})

    def test_drops_entries_with_bad_keys_or_ranks(self):
        raw = {
            "https://a": 2,
            "": 1,
            "https://b": "3",
            "https://c": True,
            "https://d": 0,
            "https://e": 1.0,
        }
        self.assertEqual(coerce_desired_set(raw), {"https://a": 2, "https://e": 1})

    def test_drops_non_finite_ranks(self):
        raw = {
            "https://a": float("inf"),
            "https://b": float("-inf"),
            "https://c": float("nan"),
            "https://d": 1,
        }
        self.assertEqual(coerce_desired_set(raw), {"https://d": 1})

    def test_fractional_ranks_are_reranked_without_collisions(self):
        raw = {"https://a": 1, "https://b": 1.5, "https://c": 2, "https://d": 7}
        coerced = coerce_desired_set(raw)
        self.assertEqual(
            coerced, {"https://a": 1, "https://b": 2, "https://c": 3, "https://d": 4}
        )
        self.assertEqual(rank_of(coerced, "https://c"), 3)


class RankDensityTest(unittest.TestCase):
    def test_sorted_urls_follow_rank(self):
        desired = {"https://c": 7, "https://a": 1, "https://b": 3}
        self.assertEqual(sorted_urls(desired), ["https://a", "https://b", "https://c"])

    def test_normalize_closes_gaps(self):
        desired = normalize_ranks({"https://c": 7, "https://a": 1, "https://b": 3})
        self.assertEqual(desired, {"https://a": 1, "https://b": 2, "https://c": 3})

    def test_append_uses_next_rank_and_ignores_duplicates(self):
        desired = append_url({"https://a": 1, "https://b": 5}, "https://c")
        self.assertEqual(desired, {"https://a": 1, "https://b": 2, "https://c": 3})
        self.assertEqual(append_url(desired, "https://a"), desired)

    def test_remove_renormalizes(self):
        desired = remove_url({"https://a": 1, "https://b": 2, "https://c": 3}, "https://b")
        self.assertEqual(desired, {"https://a": 1, "https://c": 2})
        self.assertEqual(remove_url(desired, "https://missing"), desired)

    def test_ranks_stay_dense_across_random_edits(self):
        rng = random.Random(7)
        desired = {}
        pool = [f"https://site-{n}.test" for n in range(12)]
        for _ in range(300):
            op = rng.choice(["append", "remove", "reorder"])
            if op == "append":
                desired = append_url(desired, rng.choice(pool))
            elif op == "remove":
                desired = remove_url(desired, rng.choice(pool))
            else:
                window = rng.sample(pool, rng.randint(0, 4))
                desired = merge_window_order(desired, window)
            self.assertTrue(has_dense_ranks(desired), desired)
        self.assertTrue(has_dense_ranks({}))


class MergeWindowOrderTest(unittest.TestCase):
    def test_window_order_wins_and_absent_urls_keep_relative_order(self):
        desired = {"https://a": 1, "https://b": 2, "https://c": 3, "https://d": 4}
        merged = merge_window_order(desired, ["https://c", "https://a"])
        self.assertEqual(
            merged,
            {"https://c": 1, "https://a": 2, "https://b": 3, "https://d": 4},
        )

    def test_first_occurrence_wins_for_duplicates(self):
        merged = merge_window_order({}, ["https://a", "https://b", "https://a", ""])
        self.assertEqual(merged, {"https://a": 1, "https://b": 2})

    def test_rank_of(self):
        self.assertEqual(rank_of({"https://a": 2}, "https://a"), 2)
        self.assertIsNone(rank_of({"https://a": 2}, "https://b"))


if __name__ == "__main__":
    unittest.main()
