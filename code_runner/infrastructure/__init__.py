"""
Infrastructure Layer

Adapters implementing the domain ports: HTTP clients, the WebSocket
transport, configuration and logging.
"""
