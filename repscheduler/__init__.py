"""
repscheduler - slot suggestions and proximity ranking for field reps.
"""

__version__ = "0.1.0"
