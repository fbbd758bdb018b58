"""Technician photo management.

Photos arrive through the upload gate, are pushed to the remote object store
under a fixed folder and their URLs are kept in DuckDB as one ordered list per
technician (at most five). Deletion removes remote objects first and metadata
second, on a best-effort basis.
"""
