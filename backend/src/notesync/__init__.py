"""
NoteSync Backend - Note Taking with Live Collaboration

Notes with labels, optional password protection and real-time
collaborative editing over WebSockets.
"""

__version__ = "1.0.0"
