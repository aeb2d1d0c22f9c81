"""CLI entry point wrapper.

The :func:`main` function proxies to the Typer application exported by
:mod:`ionprobe.cli.app`.
"""

from __future__ import annotations

from ionprobe.cli.app import main as _app_main


def main(argv: list[str] | None = None) -> None:
    """Invoke the IonProbe CLI.

    Parameters
    ----------
    argv:
        Optional list of arguments to pass to Typer. When ``None`` the
        process arguments are used.
    """

    _app_main(argv)


__all__ = ["main"]
