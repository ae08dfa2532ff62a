#!/usr/bin/env python
"""
Launcher script for Rx Designer.

Usage from repo root:
    python run_rx_designer.py [layout.json]

Alternative:
    python -m rx_designer
"""
from rx_designer.app import main

if __name__ == "__main__":
    main()
