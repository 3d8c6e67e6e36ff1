"""Tests for mesa.timing — one timed execution of the target."""

from __future__ import annotations

import os
import sys
import tempfile
import unittest
from pathlib import Path

from mesa.errors import SpawnError
from mesa.timing import TimedResult, run_timed


class TestTimedResult(unittest.TestCase):
    """Tests for TimedResult dataclass."""

    def test_cpu_time_property(self) -> None:
        r = TimedResult(wall_time_s=5.0, user_time_s=1.5, sys_time_s=0.5, exit_code=0)
        self.assertAlmostEqual(r.cpu_time_s, 2.0, places=5)

    def test_ok(self) -> None:
        self.assertTrue(TimedResult(1.0, 0.0, 0.0, exit_code=0).ok)
        self.assertFalse(TimedResult(1.0, 0.0, 0.0, exit_code=3).ok)


class TestRunTimed(unittest.TestCase):
    """Tests for run_timed()."""

    def test_success(self) -> None:
        result = run_timed([sys.executable, "-c", "pass"])
        self.assertEqual(result.exit_code, 0)
        self.assertGreater(result.wall_time_s, 0)

    def test_captures_wall_time(self) -> None:
        result = run_timed([sys.executable, "-c", "import time; time.sleep(0.3)"])
        self.assertGreater(result.wall_time_s, 0.25)
        self.assertLess(result.wall_time_s, 5.0)

    def test_exit_code(self) -> None:
        result = run_timed([sys.executable, "-c", "raise SystemExit(42)"])
        self.assertEqual(result.exit_code, 42)
        self.assertFalse(result.ok)

    def test_output_discarded_by_default(self) -> None:
        result = run_timed([sys.executable, "-c", "print('hello')"])
        self.assertEqual(result.stdout, "")

    def test_capture(self) -> None:
        result = run_timed(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"],
            capture=True,
        )
        self.assertIn("out", result.stdout)
        self.assertIn("err", result.stderr)

    def test_arguments_not_shell_split(self) -> None:
        result = run_timed(
            [sys.executable, "-c", "import sys; print(len(sys.argv))", "a b", "c"],
            capture=True,
        )
        self.assertEqual(result.stdout.strip(), "3")

    def test_missing_program(self) -> None:
        with self.assertRaises(SpawnError) as ctx:
            run_timed(["/nonexistent/mesa-no-such-program"])
        self.assertIn("mesa-no-such-program", str(ctx.exception))

    @unittest.skipIf(os.geteuid() == 0, "root can execute anything")
    def test_not_executable(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            script = Path(tmpdir) / "script.sh"
            script.write_text("#!/bin/sh\nexit 0\n")
            script.chmod(0o644)
            with self.assertRaises(SpawnError):
                run_timed([str(script)])


if __name__ == "__main__":
    unittest.main()
