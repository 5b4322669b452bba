from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from mareatigre.config import Settings, load_settings, load_toml_config
from mareatigre.constants import ALERTS_RSS_URL, CACHE_FRESH_SEC


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.toml"
        env = {k: v for k, v in os.environ.items() if not k.startswith("MAREATIGRE_")}
        self._env = patch.dict(os.environ, env, clear=True)
        self._env.start()

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()

    def write(self, text: str) -> None:
        self.path.write_text(text, encoding="utf-8")

    def test_missing_file_gives_defaults(self) -> None:
        settings = load_settings(self.path)
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.cache.fresh_sec, CACHE_FRESH_SEC)
        self.assertEqual(settings.sources.alerts_url, ALERTS_RSS_URL)

    def test_toml_values(self) -> None:
        self.write(
            "# comment\n"
            "[storage]\n"
            'data_dir = "/var/lib/mareatigre"\n'
            "[http]\n"
            "timeout_sec = 4  # seconds\n"
            "[cache]\n"
            "fresh_sec = 60\n"
            "stale_sec = 120.5\n"
            "[logging]\n"
            'format = "json"\n'
            "[sources]\n"
            'telemetry_url = "https://example.org/t.php?c=a%2Fb#frag"\n'
        )
        settings = load_settings(self.path)
        self.assertEqual(settings.storage.data_dir, "/var/lib/mareatigre")
        self.assertEqual(settings.http.timeout_sec, 4.0)
        self.assertIsInstance(settings.http.timeout_sec, float)
        self.assertEqual(settings.cache.fresh_sec, 60.0)
        self.assertEqual(settings.cache.stale_sec, 120.5)
        self.assertEqual(settings.logging.format, "json")
        self.assertEqual(settings.sources.telemetry_url, "https://example.org/t.php?c=a%2Fb#frag")

    def test_comment_after_quoted_value_is_stripped(self) -> None:
        self.write(
            "[storage]\n"
            'data_dir = "/srv/data"  # history files\n'
            "[sources]\n"
            'height_url = "https://example.org/rss#top" # feed\n'
            "[logging] # renderer\n"
            'format = "json"\n'
        )
        settings = load_settings(self.path)
        self.assertEqual(settings.storage.data_dir, "/srv/data")
        self.assertEqual(settings.sources.height_url, "https://example.org/rss#top")
        self.assertEqual(settings.logging.format, "json")

    def test_wrong_types_and_unknown_keys_are_ignored(self) -> None:
        self.write('[http]\ntimeout_sec = "fast"\nretries = 3\n[cache]\nfresh_sec = true\n')
        settings = load_settings(self.path)
        self.assertEqual(settings.http, Settings().http)
        self.assertEqual(settings.cache, Settings().cache)

    def test_environment_wins(self) -> None:
        self.write("[cache]\nfresh_sec = 60\n[logging]\nlevel = \"info\"\n")
        with patch.dict(
            os.environ,
            {
                "MAREATIGRE_CACHE_FRESH": "30",
                "MAREATIGRE_LOG_LEVEL": "debug",
                "MAREATIGRE_DATA_DIR": "/tmp/mt",
                "MAREATIGRE_HTTP_TIMEOUT": "2.5",
            },
        ):
            settings = load_settings(self.path)
        self.assertEqual(settings.cache.fresh_sec, 30.0)
        self.assertEqual(settings.logging.level, "debug")
        self.assertEqual(settings.storage.data_dir, "/tmp/mt")
        self.assertEqual(settings.http.timeout_sec, 2.5)

    def test_nested_sections(self) -> None:
        self.write("[a.b]\nx = 1\ny = false\n")
        self.assertEqual(load_toml_config(self.path), {"a": {"b": {"x": 1, "y": False}}})


if __name__ == "__main__":
    unittest.main()
