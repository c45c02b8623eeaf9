"""flowsketch backend - FastAPI service and WebSocket broadcasting."""
