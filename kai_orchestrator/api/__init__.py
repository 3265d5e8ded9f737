"""HTTP API for kAI routing and orchestration."""
