from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mo2command.command.builder import MO2Command
from mo2command.core.atomic_io import write_atomic_json
from mo2command.core.time import timestamped_name, utc_isoformat


CONFIG_FILENAME = "mo2command.json"
DEFAULT_LAUNCHER_PATH = r"C:\Modding\MO2\ModOrganizer.exe"

_SECRET_KEY_RE = re.compile(r"(secret|token|api[_-]?key|private[_-]?key|password)", re.IGNORECASE)


def _deny_secrets(obj: Any, path: str = "$") -> list[str]:
    problems: list[str] = []
    if isinstance(obj, dict):
        for k, v in obj.items():
            kp = f"{path}.{k}"
            # Tool profile names are user labels, not settings.
            if path != "$.tools" and isinstance(k, str) and _SECRET_KEY_RE.search(k):
                problems.append(f"Secret-like key not allowed in {CONFIG_FILENAME}: {kp}")
            problems.extend(_deny_secrets(v, kp))
    elif isinstance(obj, list):
        for i, v in enumerate(obj):
            problems.extend(_deny_secrets(v, f"{path}[{i}]"))
    return problems


@dataclass(frozen=True)
class ToolProfile:
    name: str
    target_path: str
    args: tuple[str, ...] = ()

    def to_json_obj(self) -> dict[str, Any]:
        return {"target_path": self.target_path, "args": list(self.args)}


@dataclass(frozen=True)
class LauncherConfig:
    launcher_path: str
    config_version: str
    written_at: str
    tools: dict[str, ToolProfile] = field(default_factory=dict)
    run: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def default(launcher_path: str | None = None, config_version: str | None = None) -> "LauncherConfig":
        return LauncherConfig(
            launcher_path=launcher_path or DEFAULT_LAUNCHER_PATH,
            config_version=config_version or timestamped_name("cfg"),
            written_at=utc_isoformat(),
            tools={},
            run={"timeout_seconds": None, "record_root": None},
        )

    @staticmethod
    def from_json_obj(obj: Any) -> "LauncherConfig":
        problems = validate_launcher_config_obj(obj)
        if problems:
            raise ValueError(f"Invalid {CONFIG_FILENAME}:\n" + "\n".join(problems))
        tools = {
            name: ToolProfile(name=name, target_path=t["target_path"], args=tuple(t.get("args") or []))
            for name, t in (obj.get("tools") or {}).items()
        }
        return LauncherConfig(
            launcher_path=obj["launcher_path"],
            config_version=str(obj.get("config_version", "")),
            written_at=str(obj.get("written_at", "")),
            tools=tools,
            run=dict(obj.get("run") or {}),
        )

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "config_version": self.config_version,
            "written_at": self.written_at,
            "launcher_path": self.launcher_path,
            "tools": {name: t.to_json_obj() for name, t in sorted(self.tools.items())},
            "run": self.run,
        }

    def tool(self, name: str) -> ToolProfile:
        t = self.tools.get(name)
        if t is None:
            known = ", ".join(sorted(self.tools)) or "<none>"
            raise ValueError(f"unknown tool profile: {name!r} (configured: {known})")
        return t

    def with_tool(self, name: str, target_path: str, args: list[str] | None = None) -> "LauncherConfig":
        tools = {**self.tools, name: ToolProfile(name=name, target_path=target_path, args=tuple(args or []))}
        return LauncherConfig(
            launcher_path=self.launcher_path,
            config_version=self.config_version,
            written_at=self.written_at,
            tools=tools,
            run=self.run,
        )

    def command_for(self, tool_name: str, extra_args: list[str] | None = None) -> MO2Command:
        """
        Start a command for a configured tool.

        The profile's default args come first, then `extra_args`, in order.
        """
        t = self.tool(tool_name)
        return MO2Command(self.launcher_path, t.target_path).args(t.args).args(extra_args or [])

    def timeout_seconds(self) -> float | None:
        v = self.run.get("timeout_seconds")
        return float(v) if v is not None else None

    def record_root(self) -> Path | None:
        v = self.run.get("record_root")
        return Path(v).expanduser() if isinstance(v, str) and v.strip() else None


def validate_launcher_config_obj(obj: Any) -> list[str]:
    if not isinstance(obj, dict):
        return ["$: expected object"]
    problems = _deny_secrets(obj)

    lp = obj.get("launcher_path")
    if not isinstance(lp, str) or not lp.strip():
        problems.append("$.launcher_path: expected non-empty string")

    tools = obj.get("tools", {})
    if not isinstance(tools, dict):
        problems.append("$.tools: expected object")
        tools = {}
    for name, t in tools.items():
        tp = f"$.tools.{name}"
        if not isinstance(t, dict):
            problems.append(f"{tp}: expected object")
            continue
        if not isinstance(t.get("target_path"), str) or not t["target_path"].strip():
            problems.append(f"{tp}.target_path: expected non-empty string")
        args = t.get("args", [])
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            problems.append(f"{tp}.args: expected list of strings")

    run = obj.get("run", {})
    if not isinstance(run, dict):
        problems.append("$.run: expected object")
    else:
        ts = run.get("timeout_seconds")
        if ts is not None and (isinstance(ts, bool) or not isinstance(ts, (int, float)) or ts <= 0):
            problems.append("$.run.timeout_seconds: expected positive number or null")
        rr = run.get("record_root")
        if rr is not None and not isinstance(rr, str):
            problems.append("$.run.record_root: expected string or null")

    return problems


def default_config_path(root: Path) -> Path:
    return root / CONFIG_FILENAME


def write_launcher_config(cfg: LauncherConfig, path: Path) -> None:
    obj = cfg.to_json_obj()
    problems = validate_launcher_config_obj(obj)
    if problems:
        raise ValueError(f"Invalid {CONFIG_FILENAME}:\n" + "\n".join(problems))
    write_atomic_json(path, obj)


def read_launcher_config(path: Path) -> LauncherConfig:
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid {CONFIG_FILENAME}: could not parse {path} ({e})") from e
    return LauncherConfig.from_json_obj(obj)
