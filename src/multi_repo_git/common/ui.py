"""Terminal styling for per-repository reports, and the branch pickers."""

from __future__ import annotations

import click
from InquirerPy import inquirer

# Colors using click.style
CYAN = "cyan"
GREEN = "green"
YELLOW = "yellow"
RED = "red"
DIM = "bright_black"
BOLD = "bold"

REPORT_PREFIX = "=== "


def style_error(msg: str) -> str:
    return click.style(f"✗ {msg}", fg=RED)


def style_success(msg: str) -> str:
    return click.style(f"✓ {msg}", fg=GREEN)


def style_info(msg: str) -> str:
    return click.style(f"→ {msg}", fg=CYAN)


def style_warn(msg: str) -> str:
    return click.style(f"! {msg}", fg=YELLOW)


def style_dim(msg: str) -> str:
    return click.style(msg, fg=DIM)


def style_header(msg: str) -> str:
    """Style a repository name or a per-repository section header."""
    return click.style(msg, fg=CYAN, bold=True)


def style_report_line(line: str) -> str:
    """Style one line of an operation report.

    Headers get a blank line above them, ``done`` footers are dimmed and
    ``failed`` footers are shown as errors without the ``===`` frame.
    Command output passes through unchanged.
    """
    if not line.startswith(REPORT_PREFIX):
        return line
    if ": failed: " in line:
        return style_error(line[len(REPORT_PREFIX) :].removesuffix(" ==="))
    if line.endswith(": done ==="):
        return style_dim(line)
    return "\n" + style_header(line)


def branch_choices(pairs: list[tuple[str, str]]) -> list[str]:
    """Picker rows for (repository name, branch label) pairs, names aligned."""
    if not pairs:
        return []
    width = max(len(name) for name, _ in pairs)
    return [f"{name.ljust(width)}  {label}" for name, label in pairs]


def fuzzy_select(options: list[str], message: str) -> int | None:
    """Fuzzy picker with substring matching. Returns index or None if cancelled."""
    try:
        prompt = inquirer.fuzzy(  # type: ignore[attr-defined]
            message=message,
            choices=options,
            match_exact=True,
        )
        result = prompt.execute()
        if result is None:
            return None
        return options.index(result)
    except KeyboardInterrupt:
        return None


def select_from_menu(title: str, options: list[str]) -> str | None:
    """Pick one branch name; warns and returns None when there is nothing to pick."""
    if not options:
        click.echo(style_warn("No branches found."), err=True)
        return None

    index = fuzzy_select(options, title)
    if index is None:
        return None
    return options[index]
