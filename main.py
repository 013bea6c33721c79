#!/usr/bin/env python
"""
Gesture Canvas - Main Entry Point
=================================
Run the hand-gesture drawing application.
"""

import sys

from gesture_canvas.ui import main

if __name__ == "__main__":
    sys.exit(main())
