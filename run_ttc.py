#!/usr/bin/env python3
"""
Launcher for the camera/lidar TTC pipeline.
Forwards the command line to ttc_fusion.scripts.process_sequence.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent))

from ttc_fusion.scripts.process_sequence import main


if __name__ == "__main__":
    sys.exit(main())
