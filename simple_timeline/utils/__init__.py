"""
Utility modules for the timeline engine.
"""
