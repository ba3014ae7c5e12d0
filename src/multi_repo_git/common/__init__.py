"""Shared utilities for multi-repo-git."""

from multi_repo_git.common.git import (
    GitClient,
    LogOptions,
    ProcessError,
    VcsClient,
    run_git,
)
from multi_repo_git.common.ui import (
    BOLD,
    CYAN,
    DIM,
    GREEN,
    RED,
    YELLOW,
    branch_choices,
    fuzzy_select,
    select_from_menu,
    style_dim,
    style_error,
    style_header,
    style_info,
    style_report_line,
    style_success,
    style_warn,
)
from multi_repo_git.common.validate import ValidationError

__all__ = [
    "BOLD",
    "CYAN",
    "DIM",
    "GREEN",
    "RED",
    "YELLOW",
    "GitClient",
    "LogOptions",
    "ProcessError",
    "ValidationError",
    "VcsClient",
    "branch_choices",
    "fuzzy_select",
    "run_git",
    "select_from_menu",
    "style_dim",
    "style_error",
    "style_header",
    "style_info",
    "style_report_line",
    "style_success",
    "style_warn",
]
