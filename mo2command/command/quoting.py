from __future__ import annotations


def quote_path(path: str) -> str:
    # Paths are assumed not to contain double quotes; they are not escaped.
    return f'"{path}"'


def join_arguments(arguments: list[str]) -> str:
    return " ".join(arguments)


def escape_for_mo2_args(args: str) -> str:
    """
    Escape a joined argument string for MO2's `-a "<args>"` slot.

    The whole downstream argument list travels inside one quoted value, so every
    embedded `"` is prefixed with a backslash. Nothing else is touched: lone
    backslashes and existing `\\"` sequences pass through the same rule.
    """
    return args.replace('"', '\\"')
