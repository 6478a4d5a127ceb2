"""
StreamAtlas Viewer Service.

FastAPI server hosting the map session: it switches between the live
and history views, exposes the playback controls and streams marker
updates to map clients over a WebSocket.
"""
