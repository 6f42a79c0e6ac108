"""
JagaCall backend: a secure intermediary between the JagaCall mobile app and
the ILMU AI API for call, voice and file scam analysis.
"""

__version__ = "1.0.0"
