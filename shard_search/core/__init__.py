"""
Shard worker and coordinator
"""
