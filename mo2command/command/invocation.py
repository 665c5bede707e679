from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class LaunchInvocation:
    """
    Process-launch descriptor: executable plus discrete argument fields.

    Nothing here goes through a shell. `argv` is handed to `subprocess` as a
    list, so arguments reach the launcher exactly as stored.
    """

    executable: str
    args: tuple[str, ...]
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def with_cwd(self, cwd: str | None) -> "LaunchInvocation":
        return replace(self, cwd=cwd)

    def with_env(self, env: dict[str, str] | None = None, **updates: str) -> "LaunchInvocation":
        return replace(self, env={**self.env, **(env or {}), **updates})

    def to_json_obj(self) -> dict[str, Any]:
        obj: dict[str, Any] = {"executable": self.executable, "args": list(self.args), "argv": self.argv}
        if self.cwd is not None:
            obj["cwd"] = self.cwd
        if self.env:
            obj["env"] = dict(self.env)
        return obj


def build_invocation(executable: str, args: list[str]) -> LaunchInvocation:
    return LaunchInvocation(executable=executable, args=tuple(args))
