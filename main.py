#!/usr/bin/env python3
"""
Program Blocker - Main Entry Point

Direct execution entry point.
Usage: python main.py --block "C:\\Program Files\\SomeApp"
"""

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

# Import and run the CLI
if __name__ == "__main__":
    from program_blocker.cli.commands import main
    main()
