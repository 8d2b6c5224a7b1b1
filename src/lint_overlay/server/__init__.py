"""Live overlay server: push channel, file watching and lifecycle."""
