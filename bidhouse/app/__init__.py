"""HTTP and WebSocket surface of Bidhouse."""
