"""Game domain services: rotation, timers, rooms and the room registry.

This package contains the room engine that socket handlers and HTTP routes
drive, keeping transport concerns separated from core game mechanics.
"""
