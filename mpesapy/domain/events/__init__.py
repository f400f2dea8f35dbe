"""Domain Event definitions.

Represents significant occurrences while executing gateway calls that
other parts of the system might react to.
"""
