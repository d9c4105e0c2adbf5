"""
FlexList
---------

A tagged collection/item catalog with two interchangeable storage
backends: a durable SQLite database and a local JSON snapshot.
"""
__version__ = "0.1.0"
