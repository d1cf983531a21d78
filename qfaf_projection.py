"""
QFAF Projection - package launcher

All code lives in the qfaf/ package.
Run with: python qfaf_projection.py
"""
import sys
import os

# Ensure the package directory is on the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from qfaf import run

if __name__ == "__main__":
    run()
