"""
test_cache_utils.py

Tests for the JSON analysis cache: key stability, TTL expiry and
unreadable entries.
"""

import os
import tempfile
import time
import unittest

from cache_utils import cache_get, cache_set, clear_cache, make_analysis_cache_key
from fakes import SAMPLE_ANALYSIS


class TestCacheKey(unittest.TestCase):

    def test_same_inputs_same_key(self):
        files = [{"path": "a.py", "content": "x = 1", "size": 5}]
        same = [{"path": "a.py", "content": "x = 1", "size": 999}]

        # size is not part of the prompt, so it does not change the key
        self.assertEqual(make_analysis_cache_key(files, "m"), make_analysis_cache_key(same, "m"))

    def test_content_and_model_change_key(self):
        files = [{"path": "a.py", "content": "x = 1"}]
        changed = [{"path": "a.py", "content": "x = 2"}]

        self.assertNotEqual(make_analysis_cache_key(files, "m"), make_analysis_cache_key(changed, "m"))
        self.assertNotEqual(make_analysis_cache_key(files, "m1"), make_analysis_cache_key(files, "m2"))


class TestCacheStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.cache_dir = os.path.join(self.tmp.name, "analysis")

    def tearDown(self):
        self.tmp.cleanup()

    def test_set_then_get(self):
        cache_set("k", SAMPLE_ANALYSIS, "m", cache_dir=self.cache_dir)
        self.assertEqual(cache_get("k", ttl_minutes=5, cache_dir=self.cache_dir), SAMPLE_ANALYSIS)

    def test_miss(self):
        self.assertIsNone(cache_get("nope", ttl_minutes=5, cache_dir=self.cache_dir))

    def test_expired_entry_is_a_miss(self):
        cache_set("k", SAMPLE_ANALYSIS, "m", cache_dir=self.cache_dir)
        path = os.path.join(self.cache_dir, "k.json")
        old = time.time() - 3600
        os.utime(path, (old, old))

        self.assertIsNone(cache_get("k", ttl_minutes=30, cache_dir=self.cache_dir))
        self.assertIsNotNone(cache_get("k", ttl_minutes=120, cache_dir=self.cache_dir))

    def test_corrupt_entry_is_a_miss(self):
        os.makedirs(self.cache_dir)
        with open(os.path.join(self.cache_dir, "k.json"), "w", encoding="utf-8") as f:
            f.write("{not json")

        self.assertIsNone(cache_get("k", ttl_minutes=5, cache_dir=self.cache_dir))

    def test_clear_cache(self):
        cache_set("k", SAMPLE_ANALYSIS, "m", cache_dir=self.cache_dir)

        clear_cache(cache_dir=self.cache_dir)

        self.assertTrue(os.path.isdir(self.cache_dir))
        self.assertEqual(os.listdir(self.cache_dir), [])


if __name__ == "__main__":
    unittest.main()
