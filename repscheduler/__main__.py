"""
Entry point for ``python -m repscheduler``.
"""

from .cli.app import app

if __name__ == "__main__":
    app()
