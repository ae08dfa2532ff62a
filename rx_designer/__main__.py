"""
Module entrypoint for `python -m rx_designer`.

This allows running the application as a module from the repository root:
    python -m rx_designer [layout.json]
"""
from rx_designer.app import main

if __name__ == "__main__":
    main()
