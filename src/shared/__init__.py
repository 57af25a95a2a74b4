"""pod-analyzer shared package.

Components used by both the collector and the dispatcher:
- models: Pydantic data models
- config: Configuration management
- observability: Structured logging
"""
