"""HTTP API for uploads, stream listing and static serving."""
