"""Core provider resolution, fallback and streaming execution for vibe-relay."""
