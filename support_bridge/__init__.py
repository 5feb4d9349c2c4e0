"""
Support bridge between website visitors and a Telegram support group.

This package contains:
- settings: environment configuration
- logging_config: shared logging setup
- models: typed contracts for visitor frames and agent events
- routing: identifier registry, session lifecycle and message router
- workspace: Telegram Bot API client and update delivery
- channel: WebSocket connection hub and endpoint
- routes: FastAPI app factory and HTTP endpoints
"""
