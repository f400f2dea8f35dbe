"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the SDK to the outside world (the gateway over HTTP, the file
system, the console) and hosts the request-execution substrate.
"""
