"""
Cache-first content loading.
"""
