"""ix-match core package.

Finds IIQ capture files in a source tree, groups them into capture sessions
and moves them into a layout IX Capture can import. The pipeline is split
into focused modules:

- **file_discovery**: walking source trees and locating camera directories
- **grammar**: filename grammars (station and timestamp extraction)
- **enumerator**: candidate paths to file records or parse errors
- **pairing**: matching frames of two cameras by capture time
- **grouper**: clustering records into sessions by station and time gap
- **planner**: deterministic, collision-free destination paths
- **executor**: moving or copying files and recording per-file outcomes
- **processor**: orchestration of one run
- **run_summary** / **summary_table**: reporting

The main entry point is the ``Processor`` class.
"""

from .config import Settings, load_config
from .processor import Processor
from .version import __version__

__all__ = [
    "__version__",
    "Processor",
    "Settings",
    "load_config",
]
