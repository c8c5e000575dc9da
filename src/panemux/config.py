"""Runtime configuration assembled from CLI options and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_ACTIVATOR = "a"
DEFAULT_TITLE = "panemux"
DEFAULT_SHELL = "sh"
SHELL_ENV_VARS = ("PANEMUX_SHELL", "SHELL")


def resolve_shell(env: Optional[Mapping[str, str]] = None) -> str:
    """Shell used as ``<shell> -c <command>`` for every pane."""
    env = os.environ if env is None else env
    for name in SHELL_ENV_VARS:
        value = env.get(name)
        if value:
            return value
    return DEFAULT_SHELL


# Control chords the terminal reports under another key name
RENAMED_CHORDS = {"h": "backspace", "i": "tab", "m": "enter"}


def validate_activator(activator: str) -> str:
    if len(activator) != 1 or not ("a" <= activator <= "z"):
        raise ConfigError(
            f"invalid activator {activator!r}: expected a single lowercase letter"
        )
    if activator in RENAMED_CHORDS:
        raise ConfigError(
            f"invalid activator {activator!r}: ctrl+{activator} is indistinguishable "
            f"from {RENAMED_CHORDS[activator]}"
        )
    return activator


@dataclass(frozen=True)
class MuxConfig:
    wait: bool = False
    activator: str = DEFAULT_ACTIVATOR
    title: str = DEFAULT_TITLE
    shell: str = DEFAULT_SHELL
    log_file: Optional[Path] = None

    @classmethod
    def from_options(
        cls,
        wait: bool = False,
        activator: str = DEFAULT_ACTIVATOR,
        title: str = DEFAULT_TITLE,
        log_file: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "MuxConfig":
        return cls(
            wait=wait,
            activator=validate_activator(activator),
            title=title,
            shell=resolve_shell(env),
            log_file=log_file,
        )
