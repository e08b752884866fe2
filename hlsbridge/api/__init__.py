"""HTTP and WebSocket interface of the stream service."""
