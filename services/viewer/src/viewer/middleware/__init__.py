"""HTTP middleware for the StreamAtlas viewer."""
