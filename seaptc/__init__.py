"""
seaptc
Conference data service for the program and training conference.
"""
__version__ = "1.0.0"
