#!/usr/bin/env python3
"""
GPSR Compliance Records - Main Entry Point
==========================================

Product-safety compliance records with owner-controlled sharing.

Usage:
    python main.py --help                       # Show available commands
    python main.py init                         # Initialize database
    python main.py demo                         # Load demo data
    python main.py categories list --as bob     # Browse as a user
    python main.py access incoming --as alice   # Review access requests
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from cli.main import app

if __name__ == "__main__":
    app()
