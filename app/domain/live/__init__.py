"""
Live streaming domain logic.

Includes:
- ingest: Stream key validation and the publish-hook gatekeeper.
- transcoding: Rendition job scheduling, encoder processes, master playlists.
- stores: Storage interfaces the domain depends on.
"""
