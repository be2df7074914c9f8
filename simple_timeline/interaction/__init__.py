"""
Interaction components: drag rescheduling and move history.
"""
