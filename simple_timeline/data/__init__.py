"""
Record store for timelines and events.
"""
