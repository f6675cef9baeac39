# hosts/__init__.py
"""
Host document adapters: JSON snapshots and PowerPoint presentations.
"""
