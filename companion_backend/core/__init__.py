"""
Core runtime: logging, errors, storage, settings, scheduling and the
coordinator loop
"""
