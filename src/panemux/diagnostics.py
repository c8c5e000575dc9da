"""Diagnostics snapshot generation and export.

Collects versions, session state, recent key events and the log buffers
into a plain-text report, written to ``--log-file`` when the program ends.
"""

from __future__ import annotations

from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .log_manager import LogManager
    from .state import MultiplexerState


def gather_version_info() -> Dict[str, str]:
    versions = {}
    for name in ("panemux", "textual", "pyte"):
        try:
            versions[name] = metadata.version(name)
        except metadata.PackageNotFoundError:
            versions[name] = "unknown"
    return versions


class DiagnosticsManager:
    def __init__(
        self,
        log_manager: LogManager,
        get_state: Callable[[], Optional[MultiplexerState]],
        get_key_history: Callable[[], List[str]],
    ):
        """Initialize diagnostics manager.

        Args:
            log_manager: LogManager instance for log access
            get_state: Callback returning the live multiplexer state, if any
            get_key_history: Callback returning recent key event entries
        """
        self.log_manager = log_manager
        self.get_state = get_state
        self.get_key_history = get_key_history

    def generate_snapshot(self) -> str:
        lines: List[str] = []
        lines.append(f"timestamp: {datetime.now(timezone.utc).isoformat()}")
        lines.append("versions:")
        for name, version in gather_version_info().items():
            lines.append(f"  {name}: {version}")

        state = self.get_state()
        lines.append("")
        if state is None:
            lines.append("sessions: (not provisioned)")
        else:
            lines.append(
                f"sessions: {len(state.sessions)} focused={state.focused_index} "
                f"mode={state.mode.value} terminated={state.terminated_count}"
            )
            for s in state.sessions:
                r = s.rect
                code = "" if s.exit_code is None else f" code={s.exit_code}"
                lines.append(
                    f"  [{s.index}] {s.title!r} {r.width}x{r.height}+{r.x}+{r.y} "
                    f"{s.status.value}{code} spawns={s.spawn_count}"
                    f"{' restart' if s.restart else ''}{' *' if s.focused else ''}"
                )

        lines.append("")
        lines.append("recent keys:")
        lines.extend(f"  {entry}" for entry in self.get_key_history()[-20:])

        for category in ("events", "errors", "debug"):
            lines.append("")
            lines.append(f"{category}:")
            lines.extend(f"  {line}" for line in self.log_manager.lines(category))
        return "\n".join(lines) + "\n"

    def export_to_file(self, path: Path) -> Path:
        """Write the snapshot to ``path``.

        Raises:
            OSError: if the file cannot be written.
        """
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.generate_snapshot(), encoding="utf-8")
        return path
