"""
Entry point for running the engine as a module.

Usage:
    python -m prediction_engine run --ticks 100
"""

from prediction_engine.cli import app

if __name__ == "__main__":
    app()
