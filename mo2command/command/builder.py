from __future__ import annotations

import os
from typing import Iterable

from mo2command.command.invocation import LaunchInvocation, build_invocation
from mo2command.command.quoting import escape_for_mo2_args, join_arguments, quote_path


PathLike = str | os.PathLike


class MO2Command:
    """
    Builder for commands that run a program through Mod Organizer 2.

    MO2 launches tools as `ModOrganizer.exe run "<program>" -a "<args>"`; the
    `-a` slot carries the program's whole argument list as one quoted string.

        cmd = (
            MO2Command(r"C:\\Modding\\MO2\\ModOrganizer.exe", r"D:\\xedit\\SSEEdit64.exe")
            .arg("-sse")
            .arg("-autoexit")
            .arg('"MyPlugin.esp"')
        )
        cmd.build()    # string for logs or a Windows shell
        cmd.execute()  # LaunchInvocation for subprocess, no re-quoting

    Paths are not validated and are never escaped; a path containing `"`
    produces a broken command string.
    """

    def __init__(self, launcher_path: PathLike, target_path: PathLike) -> None:
        self.launcher_path: str = os.fspath(launcher_path)
        self.target_path: str = os.fspath(target_path)
        self.arguments: list[str] = []

    def arg(self, arg: str) -> "MO2Command":
        "Add one argument for the program."
        self.arguments.append(arg)
        return self

    def args(self, args: Iterable[str]) -> "MO2Command":
        "Add several arguments for the program, in iteration order."
        for a in args:
            self.arguments.append(a)
        return self

    def build(self) -> str:
        """
        Render `"<launcher_path>" run "<target_path>"[ -a "<arguments>"]`.

        The `-a` segment is omitted when there are no arguments. Arguments are
        space-joined and every `"` inside them is escaped as `\\"`.
        """
        head = f"{quote_path(self.launcher_path)} run {quote_path(self.target_path)}"
        if not self.arguments:
            return head
        escaped = escape_for_mo2_args(join_arguments(self.arguments))
        return f'{head} -a "{escaped}"'

    def execute(self) -> LaunchInvocation:
        """
        Render a launch descriptor for the same command.

        The joined arguments are passed as a single argv field without quote
        escaping, since no shell re-parses them.
        """
        args = ["run", self.target_path]
        if self.arguments:
            args.extend(["-a", join_arguments(self.arguments)])
        return build_invocation(self.launcher_path, args)

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        return f"MO2Command({self.launcher_path!r}, {self.target_path!r}, arguments={self.arguments!r})"
