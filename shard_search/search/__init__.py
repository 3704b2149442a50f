"""
Matching and per-shard search
"""
