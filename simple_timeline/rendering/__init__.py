"""
Rendering components for the timeline: time axis mapping, markers, lane
layout, viewport state and graphics items.
"""
