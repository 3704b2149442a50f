"""
Document sources
"""
