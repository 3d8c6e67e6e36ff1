"""Tests for mesa.config — RunConfig, validation and the defaults file."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from mesa.config import (
    DEFAULT_DATABASE,
    FilterMode,
    RunConfig,
    check_config,
    config_from_defaults,
    load_defaults,
    validate_config,
)
from mesa.errors import ConfigurationError


class TestFilterMode(unittest.TestCase):
    def test_parse(self) -> None:
        self.assertIs(FilterMode.parse("all"), FilterMode.ALL)
        self.assertIs(FilterMode.parse("EXE"), FilterMode.EXE)
        self.assertIs(FilterMode.parse(" exact "), FilterMode.EXACT)

    def test_parse_unknown(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            FilterMode.parse("some")
        self.assertIn("all, exe, exact", str(ctx.exception))


class TestRunConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = RunConfig(executable="ls")
        self.assertEqual(config.database, DEFAULT_DATABASE)
        self.assertEqual(config.output, "stdout")
        self.assertEqual(config.runs, 1)
        self.assertEqual(config.warmup, 0)
        self.assertEqual(config.show, 10)
        self.assertIs(config.filter_mode, FilterMode.EXACT)

    def test_flat_arguments(self) -> None:
        config = RunConfig(executable="ls", arguments=["-l", "a b"])
        self.assertEqual(config.flat_arguments, "-l a b")
        self.assertEqual(config.command, ["ls", "-l", "a b"])

    def test_flat_arguments_empty(self) -> None:
        self.assertEqual(RunConfig(executable="ls").flat_arguments, "")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateConfig(unittest.TestCase):
    """Tests for validate_config() and check_config()."""

    def _fields(self, config: RunConfig) -> list[str]:
        return [e.field for e in validate_config(config)]

    def test_valid(self) -> None:
        self.assertEqual(validate_config(RunConfig(executable="ls")), [])

    def test_missing_program(self) -> None:
        self.assertEqual(self._fields(RunConfig()), ["executable"])

    def test_negative_runs(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", runs=-1)), ["runs"])

    def test_zero_runs_needs_dry_run(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", runs=0)), ["runs"])
        self.assertEqual(self._fields(RunConfig(executable="ls", runs=0, dry_run=True)), [])

    def test_negative_warmup(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", warmup=-2)), ["warmup"])

    def test_show_at_least_one(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", show=0)), ["show"])

    def test_empty_database(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", database="")), ["database"])

    def test_unknown_output_format(self) -> None:
        self.assertEqual(self._fields(RunConfig(executable="ls", output="out.pdf")), ["output"])

    def test_output_formats_accepted(self) -> None:
        for output in ("stdout", "-", "stdout.csv", "out.json", "dir/out.xml", "out.txt"):
            with self.subTest(output=output):
                self.assertEqual(validate_config(RunConfig(executable="ls", output=output)), [])

    def test_check_config_raises_all_messages(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            check_config(RunConfig(runs=-1, show=0))
        message = str(ctx.exception)
        self.assertIn("target program is missing", message)
        self.assertIn("negative", message)
        self.assertIn("Display cap", message)

    def test_check_config_returns_config(self) -> None:
        config = RunConfig(executable="ls")
        self.assertIs(check_config(config), config)


# ---------------------------------------------------------------------------
# Defaults file
# ---------------------------------------------------------------------------


class TestLoadDefaults(unittest.TestCase):
    """Tests for load_defaults()."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self._cwd = os.getcwd()
        os.chdir(self.dir)

    def tearDown(self) -> None:
        os.chdir(self._cwd)
        self._tmp.cleanup()

    def test_no_default_file(self) -> None:
        self.assertEqual(load_defaults(), {})

    def test_default_file_in_cwd(self) -> None:
        (self.dir / ".mesa.yaml").write_text("runs: 7\nfilter: exe\n")
        self.assertEqual(load_defaults(), {"runs": 7, "filter": "exe"})

    def test_explicit_path(self) -> None:
        path = self.dir / "bench.yaml"
        path.write_text("database: h.data\nshow: 3\n")
        self.assertEqual(load_defaults(path), {"database": "h.data", "show": 3})

    def test_explicit_path_missing(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_defaults(self.dir / "missing.yaml")

    def test_empty_file(self) -> None:
        path = self.dir / "empty.yaml"
        path.write_text("")
        self.assertEqual(load_defaults(path), {})

    def test_not_a_mapping(self) -> None:
        path = self.dir / "list.yaml"
        path.write_text("- a\n- b\n")
        with self.assertRaises(ConfigurationError):
            load_defaults(path)

    def test_unknown_key(self) -> None:
        path = self.dir / "bad.yaml"
        path.write_text("runs: 3\niterations: 5\n")
        with self.assertRaises(ConfigurationError) as ctx:
            load_defaults(path)
        self.assertIn("iterations", str(ctx.exception))

    def test_invalid_yaml(self) -> None:
        path = self.dir / "broken.yaml"
        path.write_text("runs: [1, 2\n")
        with self.assertRaises(ConfigurationError):
            load_defaults(path)


class TestConfigFromDefaults(unittest.TestCase):
    """Tests for config_from_defaults()."""

    def test_builtins(self) -> None:
        config = config_from_defaults({}, ["ls", "-l"])
        self.assertEqual(config, RunConfig(executable="ls", arguments=["-l"]))

    def test_defaults_file_values(self) -> None:
        config = config_from_defaults(
            {"runs": 5, "warmup": 1, "filter": "all", "show": 3, "ignore_failure": True},
            ["make"],
        )
        self.assertEqual(config.runs, 5)
        self.assertEqual(config.warmup, 1)
        self.assertIs(config.filter_mode, FilterMode.ALL)
        self.assertEqual(config.show, 3)
        self.assertTrue(config.ignore_failure)

    def test_cli_overrides_defaults(self) -> None:
        config = config_from_defaults(
            {"runs": 5, "note": "file", "color": True},
            ["make"],
            cli_overrides={"runs": 2, "note": None, "color": False, "dry_run": True},
        )
        self.assertEqual(config.runs, 2)
        self.assertEqual(config.note, "file")
        self.assertIs(config.color, False)
        self.assertTrue(config.dry_run)

    def test_no_command(self) -> None:
        config = config_from_defaults({}, [])
        self.assertEqual(config.executable, "")
        self.assertEqual(config.arguments, [])

    def test_bad_integer(self) -> None:
        with self.assertRaises(ConfigurationError):
            config_from_defaults({"runs": "many"}, ["ls"])

    def test_bad_filter(self) -> None:
        with self.assertRaises(ConfigurationError):
            config_from_defaults({"filter": "newest"}, ["ls"])


if __name__ == "__main__":
    unittest.main()
