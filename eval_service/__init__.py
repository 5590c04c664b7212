"""
HTTP evaluation service for Genius Square boards.
"""
