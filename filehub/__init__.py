"""FileHub backend package.

A JSON HTTP API for sharing files in a folder hierarchy, posting messages
and announcements, commenting and receiving notifications. The FastAPI
application lives in :mod:`filehub.main`.
"""
