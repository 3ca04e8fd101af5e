"""
Main Application Entry Point
Command-line interface for running evacuation simulations
"""

import sys

from evacsim.cli import main

if __name__ == '__main__':
    sys.exit(main())
