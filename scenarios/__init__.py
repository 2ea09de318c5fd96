# GPSR Compliance Records - Demo Scenarios
# Sample data and a walkthrough of the sharing workflow

from .demo_data import load_demo_data
from .walkthrough import run_scenarios

__all__ = ['load_demo_data', 'run_scenarios']
