from __future__ import annotations

import io
import json
import os
import stat
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from mo2command.__main__ import main
from mo2command.config.launcher_config import LauncherConfig, write_launcher_config


def _run(argv: list[str]) -> tuple[int, str]:
    buf = io.StringIO()
    with redirect_stdout(buf):
        rc = main(argv)
    return rc, buf.getvalue()


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_build_with_explicit_paths(self) -> None:
        rc, out = _run(
            [
                "build",
                "--root",
                str(self.root),
                "--launcher",
                r"C:\MO2\ModOrganizer.exe",
                "--target",
                r"C:\Tools\App.exe",
                "--",
                "-sse",
                '"Skyrim.esm"',
            ]
        )
        self.assertEqual(rc, 0)
        self.assertEqual(out.strip(), r'"C:\MO2\ModOrganizer.exe" run "C:\Tools\App.exe" -a "-sse \"Skyrim.esm\""')

    def test_build_json_uses_config_tool(self) -> None:
        cfg = LauncherConfig.default(launcher_path="mo2.exe").with_tool("loot", "loot.exe", ["--game", "SkyrimSE"])
        write_launcher_config(cfg, self.root / "mo2command.json")

        rc, out = _run(["build", "--root", str(self.root), "--tool", "loot", "--json", "--", "--auto-sort"])
        self.assertEqual(rc, 0)
        obj = json.loads(out)
        self.assertEqual(obj["command"], '"mo2.exe" run "loot.exe" -a "--game SkyrimSE --auto-sort"')
        self.assertEqual(obj["argv"], ["mo2.exe", "run", "loot.exe", "-a", "--game SkyrimSE --auto-sort"])

    def test_build_without_launcher_or_config_exits(self) -> None:
        with self.assertRaises(SystemExit):
            _run(["build", "--root", str(self.root), "--target", "app.exe"])

    def test_init_refuses_to_overwrite(self) -> None:
        rc, out = _run(["init", "--root", str(self.root), "--launcher", "mo2.exe"])
        self.assertEqual(rc, 0)
        self.assertTrue(json.loads(out)["ok"])
        self.assertTrue((self.root / "mo2command.json").exists())
        with self.assertRaises(SystemExit):
            _run(["init", "--root", str(self.root)])
        rc, _ = _run(["init", "--root", str(self.root), "--force"])
        self.assertEqual(rc, 0)

    def test_tools_lists_profiles(self) -> None:
        cfg = LauncherConfig.default().with_tool("sseedit", "SSEEdit64.exe", ["-sse"])
        write_launcher_config(cfg, self.root / "mo2command.json")
        rc, out = _run(["tools", "--root", str(self.root)])
        self.assertEqual(rc, 0)
        self.assertEqual(json.loads(out)["tools"], {"sseedit": {"target_path": "SSEEdit64.exe", "args": ["-sse"]}})

    @unittest.skipIf(os.name == "nt", "fake launcher relies on a shebang")
    def test_run_returns_child_exit_code_and_records(self) -> None:
        fake = self.root / "ModOrganizer"
        fake.write_text(
            f"#!{sys.executable}\nimport sys\nprint('|'.join(sys.argv[1:]))\nraise SystemExit(4)\n",
            encoding="utf-8",
        )
        fake.chmod(fake.stat().st_mode | stat.S_IEXEC)
        record_dir = self.root / "rec"

        rc, out = _run(
            [
                "run",
                "--root",
                str(self.root),
                "--launcher",
                str(fake),
                "--target",
                "app.exe",
                "--record-dir",
                str(record_dir),
                "--timeout-seconds",
                "30",
                "--",
                "-sse",
                '"Skyrim.esm"',
            ]
        )
        self.assertEqual(rc, 4)
        summary = json.loads(out)
        self.assertFalse(summary["ok"])
        self.assertEqual(summary["record_dir"], str(record_dir.resolve()))
        self.assertEqual(
            (record_dir / "stdout.txt").read_text(encoding="utf-8"),
            'run|app.exe|-a|-sse "Skyrim.esm"\n',
        )
        self.assertEqual(
            (record_dir / "command.txt").read_text(encoding="utf-8").strip(),
            f'"{fake}" run "app.exe" -a "-sse \\"Skyrim.esm\\""',
        )

    @unittest.skipIf(os.name == "nt", "fake launcher relies on a shebang")
    def test_run_into_existing_record_dir_exits_2(self) -> None:
        fake = self.root / "ModOrganizer"
        marker = self.root / "launched"
        fake.write_text(
            f"#!{sys.executable}\nopen({str(marker)!r}, 'a').write('x')\n",
            encoding="utf-8",
        )
        fake.chmod(fake.stat().st_mode | stat.S_IEXEC)
        record_dir = self.root / "rec"
        record_dir.mkdir()

        rc, out = _run(
            [
                "run",
                "--root",
                str(self.root),
                "--launcher",
                str(fake),
                "--target",
                "app.exe",
                "--record-dir",
                str(record_dir),
            ]
        )
        self.assertEqual(rc, 2)
        self.assertEqual(out, "")
        self.assertFalse(marker.exists())
        self.assertEqual(list(record_dir.iterdir()), [])

    def test_run_missing_launcher_reports_error(self) -> None:
        rc, _ = _run(
            [
                "run",
                "--root",
                str(self.root),
                "--launcher",
                str(self.root / "nope.exe"),
                "--target",
                "app.exe",
            ]
        )
        self.assertEqual(rc, 2)


if __name__ == "__main__":
    unittest.main()
