"""Live dashboard for locally attached temporary programs."""

from hpx.tui.display import MonitorDisplay
from hpx.tui.state import MonitorState

__all__ = ["MonitorDisplay", "MonitorState"]
