"""Game state services: store, sync, countdowns and admin commands.

This package contains the transport-free logic that HTTP routes and socket
handlers import, keeping Flask and Socket.IO concerns separated from the
shared game state model.
"""
