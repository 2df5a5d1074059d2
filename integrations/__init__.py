"""
External collaborators: the validation oracle client and presentation sinks.
"""
