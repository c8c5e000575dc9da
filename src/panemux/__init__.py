"""panemux - simple terminal multiplexing from a layout specification.

Quick Start
-----------
```python
from panemux import parse_spec, assign, Rect

tree = parse_spec('[ -f "vim" .. [ "make watch" : "tail -f log" ] ]')
for leaf, rect in assign(tree, Rect(0, 0, 80, 24)):
    print(leaf.title, rect)
```

Core Components
---------------
- **grammar**: spec text -> SplitNode/CommandNode tree
- **layout**: tree + rectangle -> per-pane rectangles
- **sessions**: one session per pane, spawn/restart/shutdown policy
- **multiplexer**: prefix-key state machine routing keystrokes
- **app**: Textual surface running the panes in PTYs
"""

from .config import MuxConfig
from .errors import ConfigError, PanemuxError, ParseError, ScreenTooSmallError, SpecSourceError
from .grammar import CommandNode, CommandOptions, Orientation, SplitNode, leaves, parse_spec
from .layout import Rect, assign, divide, walk
from .multiplexer import InputMultiplexer, transition
from .sessions import SessionManager, validate_focus
from .state import InputMode, MultiplexerState, Session, SessionStatus
from .surface import PaneEvent, PaneSurface

__all__ = [
    "MuxConfig",
    "ConfigError",
    "PanemuxError",
    "ParseError",
    "ScreenTooSmallError",
    "SpecSourceError",
    "CommandNode",
    "CommandOptions",
    "Orientation",
    "SplitNode",
    "leaves",
    "parse_spec",
    "Rect",
    "assign",
    "divide",
    "walk",
    "InputMultiplexer",
    "transition",
    "SessionManager",
    "validate_focus",
    "InputMode",
    "MultiplexerState",
    "Session",
    "SessionStatus",
    "PaneEvent",
    "PaneSurface",
]
