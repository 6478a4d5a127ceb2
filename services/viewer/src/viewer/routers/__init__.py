"""
API router package for the StreamAtlas viewer.

Contains the health, live, view (mode and visibility), history/playback
and WebSocket router modules.
"""
