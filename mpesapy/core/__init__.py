"""Core Application Layer: the gateway operations and their orchestration.

Connects the domain layer with the infrastructure layer. Contains the
operation services, the client composition root and the command handler.
"""
