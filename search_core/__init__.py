"""
search_core/__init__.py
-----------------------
Shared runtime pieces: settings, error taxonomy and logging.
"""
