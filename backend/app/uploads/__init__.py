"""Multipart image upload handling.

Received parts are staged to a local directory, filtered by MIME type,
grouped by form field name and checked against per-field cardinality rules.
The result is attached to the request as a ``ValidationOutcome``; nothing in
this package aborts the request pipeline.

Staged files that never reach the remote store are removed by the
``TempFileJanitor`` at the end of the request.
"""
