"""Domain Layer: error taxonomy, value objects, events and interfaces.

Has no dependencies on the core or infrastructure layers.
"""
