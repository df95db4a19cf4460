"""
Domain layer containing core business logic and domain services.

Submodules:
- live: Live streaming domain logic (ingest gatekeeping, transcoding).
- notifications: Stream status fan-out to subscribers.
- utils: Domain-specific utilities (e.g., ID generation).
"""
