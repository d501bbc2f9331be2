"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (JSON-RPC endpoints,
configuration sources, the console) by implementing the interfaces defined
in the domain layer. Also includes resilience and monitoring services.
"""
