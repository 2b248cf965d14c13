"""claudesidebar: multi-session assistant host with a live-editable UI.

Runs several assistant CLI sessions in pseudo-terminals, reports which are
busy, and serves a UI whose source lives in a writable overlay so the
assistant can edit it while it runs.
"""

from claudesidebar.config import Config, load_config
from claudesidebar.orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Orchestrator",
    "load_config",
    "__version__",
]
