from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from mo2command.command.builder import MO2Command
from mo2command.config.launcher_config import (
    LauncherConfig,
    default_config_path,
    read_launcher_config,
    write_launcher_config,
)
from mo2command.core.ids import new_run_id


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", default=str(Path.cwd()), help="Project root (default: cwd)")
    p.add_argument("--config", default=None, help="Config file (default: <root>/mo2command.json)")


def _add_command_selection(p: argparse.ArgumentParser) -> None:
    p.add_argument("--launcher", default=None, help="Path to ModOrganizer.exe (default: launcher_path from config)")
    p.add_argument("--target", default=None, help="Program MO2 should run")
    p.add_argument("--tool", default=None, help="Configured tool profile to run instead of --target")
    p.add_argument("program_args", nargs="*", help="Arguments for the program (put them after --)")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mo2command")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Write a default mo2command.json")
    _add_common(p_init)
    p_init.add_argument("--launcher", default=None, help="Path to ModOrganizer.exe")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing config file")

    p_build = sub.add_parser("build", help="Print the MO2 command string")
    _add_common(p_build)
    _add_command_selection(p_build)
    p_build.add_argument("--json", action="store_true", help="Emit command string and argv as JSON")

    p_run = sub.add_parser("run", help="Run the program through MO2 and wait for it")
    _add_common(p_run)
    _add_command_selection(p_run)
    p_run.add_argument("--timeout-seconds", type=float, default=None, help="Kill the launcher after this long")
    p_run.add_argument(
        "--record-dir",
        default=None,
        help="Capture output and write command.txt/stdout.txt/stderr.txt/result.json here",
    )
    p_run.add_argument("--detach", action="store_true", help="Start the launcher and return its pid without waiting")

    p_tools = sub.add_parser("tools", help="List configured tool profiles")
    _add_common(p_tools)

    return parser.parse_args(argv)


def _config_path(args: argparse.Namespace) -> Path:
    if getattr(args, "config", None):
        return Path(args.config).expanduser().resolve()
    return default_config_path(Path(args.root).resolve())


def _load_config(path: Path, *, required: bool) -> LauncherConfig | None:
    if not path.exists():
        if required:
            raise SystemExit(f"config not found: {path} (run `mo2command init` first)")
        return None
    try:
        return read_launcher_config(path)
    except ValueError as e:
        raise SystemExit(str(e))


def _command_from_args(args: argparse.Namespace, cfg: LauncherConfig | None) -> MO2Command:
    if args.tool and args.target:
        raise SystemExit("pass either --tool or --target, not both")
    if args.tool:
        if cfg is None:
            raise SystemExit("--tool requires a config file")
        try:
            cmd = cfg.command_for(args.tool, list(args.program_args))
        except ValueError as e:
            raise SystemExit(str(e))
        if args.launcher:
            cmd = MO2Command(args.launcher, cmd.target_path).args(cmd.arguments)
        return cmd
    if not args.target:
        raise SystemExit("one of --target or --tool is required")
    launcher = args.launcher or (cfg.launcher_path if cfg is not None else None)
    if not launcher:
        raise SystemExit("no launcher: pass --launcher or set launcher_path in the config")
    return MO2Command(launcher, args.target).args(args.program_args)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = _parse_args(argv)
    config_path = _config_path(args)

    if args.cmd == "init":
        if config_path.exists() and not args.force:
            raise SystemExit(f"config already exists: {config_path} (use --force to overwrite)")
        cfg = LauncherConfig.default(launcher_path=args.launcher)
        write_launcher_config(cfg, config_path)
        print(json.dumps({"ok": True, "config_path": str(config_path)}, ensure_ascii=False))
        return 0

    if args.cmd == "tools":
        cfg = _load_config(config_path, required=True)
        print(json.dumps({"ok": True, "tools": cfg.to_json_obj()["tools"]}, ensure_ascii=False, indent=2))
        return 0

    cfg = _load_config(config_path, required=False)
    cmd = _command_from_args(args, cfg)

    if args.cmd == "build":
        if args.json:
            print(json.dumps({"command": cmd.build(), "argv": cmd.execute().argv}, ensure_ascii=False))
        else:
            print(cmd.build())
        return 0

    if args.cmd == "run":
        from mo2command.runner.runner import LaunchError, run_invocation, spawn_detached

        invocation = cmd.execute()
        try:
            if args.detach:
                pid = spawn_detached(invocation)
                print(json.dumps({"ok": True, "command": cmd.build(), "pid": pid}, ensure_ascii=False))
                return 0

            record_dir = Path(args.record_dir).resolve() if args.record_dir else None
            if record_dir is None and cfg is not None and cfg.record_root() is not None:
                record_dir = cfg.record_root() / new_run_id()
            timeout = args.timeout_seconds
            if timeout is None and cfg is not None:
                timeout = cfg.timeout_seconds()

            result = run_invocation(
                invocation,
                timeout_seconds=timeout,
                capture_output=record_dir is not None,
                record_dir=record_dir,
                command_text=cmd.build(),
            )
        except LaunchError as e:
            print(f"[run] {e}", file=sys.stderr)
            return 2
        out = {"ok": result.ok, "command": cmd.build(), "returncode": result.returncode}
        if record_dir is not None:
            out["record_dir"] = str(record_dir)
        print(json.dumps(out, ensure_ascii=False))
        return result.returncode

    raise SystemExit(f"Unknown cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
