"""
Core utilities shared by the tagging engine: paths, exceptions,
validation and logging.
"""
